"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator


class TranscriptDialect(str, Enum):
    """Institution transcript export formats with a registered normalizer."""

    BORDEAUX = "bordeaux"


class AssignmentStrategy(str, Enum):
    """How the fuzzy matcher resolves several sources wanting one target."""

    GREEDY = "greedy"
    BEST_PER_SOURCE = "best_per_source"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Fuzzy identity matching settings."""

    threshold: float = Field(
        0.7, ge=0.0, le=1.0, description="Minimum combined score for a pair to be accepted"
    )
    name_weight: float = Field(0.6, ge=0.0, le=1.0, description="Weight of the name similarity")
    date_weight: float = Field(
        0.4, ge=0.0, le=1.0, description="Weight of the date-of-birth agreement"
    )
    assignment: AssignmentStrategy = Field(
        AssignmentStrategy.GREEDY,
        description="greedy: one transcript student per candidate, best scores first; "
        "best_per_source: every candidate takes its own best student",
    )

    @model_validator(mode="after")
    def validate_weights(self):
        """Reject a configuration where no signal contributes to the score."""
        if self.name_weight + self.date_weight <= 0:
            raise ValueError("name_weight and date_weight cannot both be 0")
        return self

    model_config = {"use_enum_values": True}


class ComparisonConfig(BaseModel):
    """Grade comparison and verification thresholds."""

    fully_verified_threshold: float = Field(
        0.95, gt=0.0, le=1.0, description="Minimum similarity for FULLY_VERIFIED"
    )
    partially_verified_threshold: float = Field(
        0.80, gt=0.0, le=1.0, description="Minimum similarity for PARTIALLY_VERIFIED"
    )
    grade_scale_max: float = Field(
        20.0, gt=0.0, description="Grade distance at which similarity drops to 0"
    )

    @model_validator(mode="after")
    def validate_threshold_order(self):
        """Partial verification must sit below full verification."""
        if self.partially_verified_threshold > self.fully_verified_threshold:
            raise ValueError(
                "partially_verified_threshold cannot exceed fully_verified_threshold"
            )
        return self


class NormalizersConfig(BaseModel):
    """Transcript normalizer selection."""

    enabled_dialects: List[TranscriptDialect] = Field(
        default_factory=lambda: list(TranscriptDialect),
        description="Dialects registered, in registration order",
    )

    @field_validator("enabled_dialects")
    @classmethod
    def deduplicate(cls, v: List[TranscriptDialect]) -> List[TranscriptDialect]:
        """Drop repeated dialects, keeping the first occurrence."""
        seen = []
        for dialect in v:
            if dialect not in seen:
                seen.append(dialect)
        return seen

    model_config = {"use_enum_values": True}


class StorageConfig(BaseModel):
    """Blob storage settings."""

    blob_dir: str = Field("./data/blobs", min_length=1, description="Local blob store root")

    @field_validator("blob_dir")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("blob_dir cannot be empty")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for gradecheck."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    normalizers: NormalizersConfig = Field(default_factory=NormalizersConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
