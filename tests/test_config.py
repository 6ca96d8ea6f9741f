"""Tests for configuration system."""

import os
import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from klassifikator.config import (
    EngineConfig,
    LoggingConfig,
    TrainingConfig,
    load_config,
)


class TestTrainingConfig:
    """Tests for TrainingConfig."""

    def test_defaults(self) -> None:
        """Test default training settings."""
        config = TrainingConfig()
        assert config.cv_folds == 10
        assert config.random_state == 1
        assert config.default_algorithm == "decision_tree"

    @pytest.mark.parametrize("folds", [1, 21])
    def test_cv_folds_bounds(self, folds: int) -> None:
        """Test that fold counts outside [2, 20] are rejected."""
        with pytest.raises(PydanticValidationError):
            TrainingConfig(cv_folds=folds)

    def test_frozen(self) -> None:
        """Test that config objects are immutable."""
        config = TrainingConfig()
        with pytest.raises(PydanticValidationError):
            config.cv_folds = 5  # type: ignore[misc]


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_level_is_normalised(self) -> None:
        """Test that log levels are upper-cased."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self) -> None:
        """Test that unknown log levels raise error."""
        with pytest.raises(PydanticValidationError, match="Log level"):
            LoggingConfig(level="chatty")


class TestEngineConfig:
    """Tests for the composed EngineConfig."""

    def test_defaults(self) -> None:
        """Test default engine configuration."""
        config = EngineConfig()
        assert config.models_dir == Path("./models")
        assert config.registry.bootstrap_default_model is True
        assert config.registry.default_model_name == "default"
        assert config.logging.json_output is False


class TestConfigLoader:
    """Tests for YAML config loading."""

    def test_load_config(self) -> None:
        """Test loading a complete config file."""
        config_content = """
storage:
  models_dir: /tmp/klassifikator-models
training:
  cv_folds: 5
  random_state: 42
  default_algorithm: random_forest
registry:
  bootstrap_default_model: false
  default_model_name: starter
logging:
  level: warning
  json_output: true
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(config_content)
            f.flush()
            config = load_config(Path(f.name))

        assert config.models_dir == Path("/tmp/klassifikator-models")
        assert config.training.cv_folds == 5
        assert config.training.random_state == 42
        assert config.training.default_algorithm == "random_forest"
        assert config.registry.bootstrap_default_model is False
        assert config.registry.default_model_name == "starter"
        assert config.logging.level == "WARNING"
        assert config.logging.json_output is True

        os.unlink(f.name)

    def test_empty_file_yields_defaults(self, tmp_path: Path) -> None:
        """Test that an empty config file gives the default configuration."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = load_config(path)

        assert config == EngineConfig()

    def test_env_var_interpolation(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variable interpolation with defaults."""
        monkeypatch.setenv("TEST_MODELS_DIR", str(tmp_path / "from-env"))
        monkeypatch.delenv("TEST_BOOTSTRAP", raising=False)
        path = tmp_path / "engine.yaml"
        path.write_text(
            "storage:\n"
            "  models_dir: ${TEST_MODELS_DIR}\n"
            "registry:\n"
            "  bootstrap_default_model: ${TEST_BOOTSTRAP:false}\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.models_dir == tmp_path / "from-env"
        assert config.registry.bootstrap_default_model is False

    def test_base_config_inheritance(self, tmp_path: Path) -> None:
        """Test that a sibling base.yaml is merged under the main file."""
        (tmp_path / "base.yaml").write_text(
            "training:\n  cv_folds: 4\n  random_state: 7\n", encoding="utf-8"
        )
        path = tmp_path / "engine.yaml"
        path.write_text("training:\n  cv_folds: 8\n", encoding="utf-8")

        config = load_config(path)

        assert config.training.cv_folds == 8
        assert config.training.random_state == 7

    def test_shipped_configs_load(self) -> None:
        """Test that the example configuration files are valid."""
        config_dir = Path(__file__).parent.parent / "configs"

        config = load_config(config_dir / "engine.yaml")

        assert config.training.cv_folds == 5
        assert config.training.default_algorithm == "decision_tree"
