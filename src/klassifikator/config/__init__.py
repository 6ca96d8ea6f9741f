"""
Configuration management with typed Pydantic models.

Provides storage, training, registry and logging settings and
environment-aware configuration loading.
"""

from klassifikator.config.loader import load_config
from klassifikator.config.settings import (
    EngineConfig,
    LoggingConfig,
    RegistryConfig,
    StorageConfig,
    TrainingConfig,
)

__all__ = [
    "EngineConfig",
    "LoggingConfig",
    "RegistryConfig",
    "StorageConfig",
    "TrainingConfig",
    "load_config",
]
