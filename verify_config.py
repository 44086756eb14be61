#!/usr/bin/env python3
"""Check config.example.yaml structure without importing gradecheck."""

import yaml
from pathlib import Path

KNOWN_SECTIONS = {
    'matching': dict,
    'comparison': dict,
    'normalizers': dict,
    'storage': dict,
    'logging': dict,
}
KNOWN_DIALECTS = ['bordeaux']
KNOWN_STRATEGIES = ['greedy', 'best_per_source']


def verify_config_structure(config_file=Path("config.example.yaml")):
    """Verify a configuration file has the expected structure."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    if not isinstance(config, dict):
        print(f"✗ {config_file} root must be a mapping")
        return False

    errors = []

    for key in config:
        if key not in KNOWN_SECTIONS:
            errors.append(f"Unknown section: {key}")

    for key, expected_type in KNOWN_SECTIONS.items():
        if key in config and not isinstance(config[key], expected_type):
            errors.append(f"'{key}' must be of type {expected_type.__name__}")

    matching = config.get('matching') or {}
    if isinstance(matching, dict):
        for key in ('threshold', 'name_weight', 'date_weight'):
            value = matching.get(key)
            if value is not None and not (isinstance(value, (int, float)) and 0 <= value <= 1):
                errors.append(f"matching.{key} must be a number between 0 and 1")
        if matching.get('assignment', 'greedy') not in KNOWN_STRATEGIES:
            errors.append(f"matching.assignment must be one of: {', '.join(KNOWN_STRATEGIES)}")

    comparison = config.get('comparison') or {}
    if isinstance(comparison, dict):
        full = comparison.get('fully_verified_threshold', 0.95)
        partial = comparison.get('partially_verified_threshold', 0.80)
        if isinstance(full, (int, float)) and isinstance(partial, (int, float)) and partial > full:
            errors.append("comparison.partially_verified_threshold cannot exceed fully_verified_threshold")

    normalizers = config.get('normalizers') or {}
    if isinstance(normalizers, dict):
        for dialect in normalizers.get('enabled_dialects') or []:
            if dialect not in KNOWN_DIALECTS:
                errors.append(f"Unknown transcript dialect: {dialect}")

    if errors:
        print(f"✗ {config_file} validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False

    print(f"✓ {config_file} structure is valid")
    print(f"  - Match threshold: {matching.get('threshold', 0.7)}")
    print(f"  - Assignment: {matching.get('assignment', 'greedy')}")
    print(f"  - Dialects: {', '.join(normalizers.get('enabled_dialects') or KNOWN_DIALECTS)}")
    return True


if __name__ == "__main__":
    import sys
    success = verify_config_structure()
    sys.exit(0 if success else 1)
