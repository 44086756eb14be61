"""Grade scale detection and normalization.

Admission platforms and institutions do not agree on a grading scale. Most
French transcripts use 0-20, while some exports report grades on 0-200. Every
grade that enters the system is brought back to the 0-20 scale here.

Known limitation: a grade on the 0-200 scale that happens to be <= 20 is
indistinguishable from a 0-20 grade and is read as such. Neither document
format declares its scale, so there is nothing to disambiguate with.
"""

import math
import re
from enum import Enum
from typing import Any, Optional, Union

GradeInput = Union[str, int, float, None]

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+([.,]\d*)?|[.,]\d+)$")


class GradeScale(Enum):
    """Supported grading scales with their maximum value."""

    SCALE_0_20 = 20.0
    SCALE_0_200 = 200.0

    @property
    def max_value(self) -> float:
        return self.value


def parse_grade_literal(raw: Any) -> Optional[float]:
    """Parse a raw grade into a float without any scale handling.

    Accepts ints, floats and numeric strings. A single decimal comma is
    accepted ("15,5" -> 15.5) since French exports use it.

    Args:
        raw: Value read from a document or an indexed record

    Returns:
        Parsed float, or None for empty, non-numeric, NaN or infinite input
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace("\u00a0", "").replace(" ", "")
        if not text or not _NUMBER_PATTERN.match(text):
            return None
        value = float(text.replace(",", "."))

    if math.isnan(value) or math.isinf(value):
        return None

    return value


def detect_grade_scale(raw: GradeInput) -> GradeScale:
    """Detect which scale a grade is expressed on.

    Values strictly above 20 and up to 200 are on the 0-200 scale. Anything
    else, including empty or invalid input, defaults to 0-20.
    """
    value = parse_grade_literal(raw)
    if value is None:
        return GradeScale.SCALE_0_20

    if 20 < value <= GradeScale.SCALE_0_200.max_value:
        return GradeScale.SCALE_0_200

    return GradeScale.SCALE_0_20


def normalize_grade(raw: GradeInput) -> Optional[float]:
    """Normalize a grade to the 0-20 scale.

    Args:
        raw: Grade as read from the document (string or number)

    Returns:
        Grade on the 0-20 scale, or None when the input is empty, not a
        number, negative, or above the maximum of the detected scale.
        Out-of-range values are rejected, never clamped.

    Example:
        >>> normalize_grade("15,5")
        15.5
        >>> normalize_grade(155)
        15.5
        >>> normalize_grade(-1) is None
        True
    """
    value = parse_grade_literal(raw)
    if value is None or value < 0:
        return None

    scale = detect_grade_scale(value)
    if value > scale.max_value:
        return None

    if scale is GradeScale.SCALE_0_200:
        return value / 10

    return value


def format_grade(value: float) -> str:
    """Render a normalized grade as a stable string.

    Integral values drop the decimal part ("15"), others keep up to two
    decimals with trailing zeros removed ("15.5", "12.25").
    """
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")


def grade_text(value: float) -> str:
    """Render a normalized grade for storage, without rounding.

    Integral values drop the decimal part; others keep their full precision.

    Example:
        >>> grade_text(15.0)
        '15'
        >>> grade_text(12.345)
        '12.345'
    """
    if value == int(value):
        return str(int(value))
    return repr(value)
