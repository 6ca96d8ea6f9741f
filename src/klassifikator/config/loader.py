"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Every key is optional; an empty file yields the default configuration.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from klassifikator.config.settings import (
    EngineConfig,
    LoggingConfig,
    RegistryConfig,
    StorageConfig,
    TrainingConfig,
)


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_bool(value: Any) -> bool:
    """Parse booleans that may arrive as strings after env interpolation."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> EngineConfig:
    """
    Load engine configuration from YAML file(s).

    Recognised sections: storage, training, registry, logging.

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated EngineConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        base_data = (
            load_yaml(potential_base)
            if potential_base.exists() and potential_base != config_path
            else {}
        )

    merged = _deep_merge(base_data, load_yaml(config_path))

    storage_data = merged.get("storage", {})
    storage = StorageConfig(
        models_dir=Path(storage_data.get("models_dir", "./models")),
    )

    training_data = merged.get("training", {})
    training = TrainingConfig(
        cv_folds=int(training_data.get("cv_folds", 10)),
        random_state=int(training_data.get("random_state", 1)),
        default_algorithm=training_data.get("default_algorithm", "decision_tree"),
    )

    registry_data = merged.get("registry", {})
    registry = RegistryConfig(
        bootstrap_default_model=_parse_bool(
            registry_data.get("bootstrap_default_model", True)
        ),
        default_model_name=registry_data.get("default_model_name", "default"),
    )

    logging_data = merged.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_data.get("level", "INFO"),
        json_output=_parse_bool(logging_data.get("json_output", False)),
    )

    return EngineConfig(
        storage=storage,
        training=training,
        registry=registry,
        logging=logging_config,
    )
