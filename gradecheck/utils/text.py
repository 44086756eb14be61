"""Text helpers shared by the normalizers and the fuzzy matcher."""

import re
import unicodedata
from typing import Any, Optional

_WHITESPACE_PATTERN = re.compile(r"\s+")
_NON_DIGIT_PATTERN = re.compile(r"\D")
_YEAR_FIRST_PATTERN = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})$")
_DAY_FIRST_PATTERN = re.compile(r"^(\d{1,2})\D(\d{1,2})\D(\d{4})$")


def clean_text(value: Any) -> Optional[str]:
    """Convert a raw cell or element value to a stripped string.

    Returns:
        Stripped string, or None when the value is missing or blank
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def fold_name(value: Optional[str]) -> str:
    """Fold a person name for comparison.

    Lowercases, strips diacritics (NFD decomposition with combining marks
    removed) and collapses runs of whitespace.

    Example:
        >>> fold_name("  Élodie   DUPONT ")
        'elodie dupont'
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_PATTERN.sub(" ", stripped).strip()


def strip_label_prefix(value: Optional[str]) -> Optional[str]:
    """Remove a "Label :" prefix from a field value.

    Transcript exports embed field labels in values, for example
    "N° étudiant : 22222222". Only the text after the last colon is kept.
    """
    text = clean_text(value)
    if text is None:
        return None
    if ":" in text:
        text = text.rsplit(":", 1)[1].strip()
    return text or None


def canonical_date(value: Optional[str]) -> str:
    """Reduce a date of birth to a comparable digit string.

    Separators are dropped. Day-first dates (15/05/1995) and year-first dates
    (1995-05-15) both become "19950515" so the two document formats compare
    equal. Anything unrecognised falls back to its digits only.
    """
    text = clean_text(value)
    if text is None:
        return ""

    year_first = _YEAR_FIRST_PATTERN.match(text)
    if year_first:
        year, month, day = year_first.groups()
        return f"{year}{int(month):02d}{int(day):02d}"

    day_first = _DAY_FIRST_PATTERN.match(text)
    if day_first:
        day, month, year = day_first.groups()
        return f"{year}{int(month):02d}{int(day):02d}"

    digits = _NON_DIGIT_PATTERN.sub("", text)
    if len(digits) == 8 and not _looks_year_first(digits):
        # ddmmyyyy without separators
        return f"{digits[4:]}{digits[2:4]}{digits[:2]}"
    return digits


def _looks_year_first(digits: str) -> bool:
    return digits.startswith(("19", "20")) and 1 <= int(digits[4:6]) <= 12
