"""Configuration management module for gradecheck."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, validate_config_file
from .models import (
    AppConfig,
    AssignmentStrategy,
    ComparisonConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
    NormalizersConfig,
    StorageConfig,
    TranscriptDialect,
)

__all__ = [
    # Loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "MatchingConfig",
    "ComparisonConfig",
    "NormalizersConfig",
    "StorageConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "AssignmentStrategy",
    "TranscriptDialect",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
