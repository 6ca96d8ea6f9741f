"""
Typed configuration models using Pydantic.

All engine configuration is defined here with explicit typing and
validation. Processing code receives these objects, never raw dicts.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StorageConfig(BaseModel):
    """Durable model artifact storage."""

    model_config = ConfigDict(frozen=True)

    models_dir: Path = Field(
        default=Path("./models"),
        description="Directory holding {name}.model.joblib / {name}.schema.json pairs",
    )


class TrainingConfig(BaseModel):
    """Model training configuration."""

    model_config = ConfigDict(frozen=True)

    cv_folds: int = Field(default=10, ge=2, le=20)
    random_state: int = Field(default=1)
    default_algorithm: str = Field(
        default="decision_tree",
        description="Algorithm used when a caller does not name one",
    )


class RegistryConfig(BaseModel):
    """Model registry startup behaviour."""

    model_config = ConfigDict(frozen=True)

    bootstrap_default_model: bool = Field(
        default=True,
        description="Train the built-in default model when storage is empty",
    )
    default_model_name: str = Field(default="default")


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in LOG_LEVELS:
            msg = f"Log level must be one of {', '.join(LOG_LEVELS)}, got: {v!r}"
            raise ValueError(msg)
        return level


class EngineConfig(BaseModel):
    """Complete engine configuration."""

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = Field(default_factory=StorageConfig)
    training: TrainingConfig = Field(default_factory=TrainingConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def models_dir(self) -> Path:
        """Convenience accessor for the artifact directory."""
        return self.storage.models_dir
