"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        name_weight = matching.get("name_weight", 0.6)
        date_weight = matching.get("date_weight", 0.4)
        threshold = matching.get("threshold", 0.7)

        if _is_number(name_weight) and _is_number(date_weight):
            total = name_weight + date_weight
            if abs(total - 1.0) > 1e-9:
                warning_messages.append(
                    f"matching weights sum to {total:g}, not 1; they will be rescaled "
                    "proportionally"
                )

            if _is_number(threshold) and threshold <= name_weight:
                warning_messages.append(
                    f"matching.threshold ({threshold:g}) <= name_weight ({name_weight:g}): "
                    "a pair with identical names but different dates of birth will be accepted"
                )

    normalizers = config_dict.get("normalizers", {})
    if isinstance(normalizers, dict):
        dialects = normalizers.get("enabled_dialects")
        if isinstance(dialects, list) and not dialects:
            warning_messages.append(
                "normalizers.enabled_dialects is empty; every transcript will be rejected "
                "as an unsupported format"
            )

    comparison = config_dict.get("comparison", {})
    if isinstance(comparison, dict):
        scale_max = comparison.get("grade_scale_max", 20.0)
        if _is_number(scale_max) and scale_max != 20:
            warning_messages.append(
                f"comparison.grade_scale_max is {scale_max:g}; normalized grades are on 0-20"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
