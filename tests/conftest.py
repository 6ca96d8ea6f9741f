"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from klassifikator.config import EngineConfig, RegistryConfig, StorageConfig, TrainingConfig
from klassifikator.engine import ClassifierEngine
from klassifikator.ingestion import load_dataset
from klassifikator.modeling.models import create_classifier
from klassifikator.modeling.registry import ModelRecord
from klassifikator.schemas import Dataset

RISK_CSV = """age,income,credit_score,risk
25,30000,650,medium
45,80000,750,low
35,45000,600,high
28,35000,680,medium
52,95000,780,low
30,28000,580,high
"""

RISK_ARFF = """% Credit risk sample
@relation risk

@attribute age numeric
@attribute income numeric
@attribute credit_score numeric
@attribute risk {low,medium,high}

@data
25,30000,650,medium
45,80000,750,low
35,45000,600,high
28,35000,680,medium
52,95000,780,low
30,28000,580,high
"""

WEATHER_CSV = """outlook,temperature,humidity,windy,play
sunny,85,85,FALSE,no
sunny,80,90,TRUE,no
overcast,83,86,FALSE,yes
rainy,70,96,FALSE,yes
rainy,68,80,FALSE,yes
rainy,65,70,TRUE,no
overcast,64,65,TRUE,yes
sunny,72,95,FALSE,no
sunny,69,70,FALSE,yes
rainy,75,80,FALSE,yes
sunny,75,70,TRUE,yes
overcast,72,90,TRUE,yes
overcast,81,75,FALSE,yes
rainy,71,?,TRUE,no
"""


@pytest.fixture
def risk_query() -> dict[str, float]:
    """Prediction request for the credit risk models."""
    return {"age": 26, "income": 31000, "credit_score": 655}


@pytest.fixture
def risk_csv(tmp_path: Path) -> Path:
    """Six-row credit risk dataset as CSV."""
    path = tmp_path / "risk.csv"
    path.write_text(RISK_CSV, encoding="utf-8")
    return path


@pytest.fixture
def risk_arff(tmp_path: Path) -> Path:
    """Six-row credit risk dataset as ARFF."""
    path = tmp_path / "risk.arff"
    path.write_text(RISK_ARFF, encoding="utf-8")
    return path


@pytest.fixture
def weather_csv(tmp_path: Path) -> Path:
    """Mixed numeric/categorical dataset with one missing value."""
    path = tmp_path / "weather.csv"
    path.write_text(WEATHER_CSV, encoding="utf-8")
    return path


@pytest.fixture
def risk_dataset(risk_csv: Path) -> Dataset:
    """Loaded credit risk dataset."""
    return load_dataset(risk_csv)


@pytest.fixture
def weather_dataset(weather_csv: Path) -> Dataset:
    """Loaded weather dataset."""
    return load_dataset(weather_csv)


@pytest.fixture
def risk_record(risk_dataset: Dataset) -> ModelRecord:
    """Decision tree fitted on the credit risk dataset."""
    classifier = create_classifier("decision_tree").fit(risk_dataset)
    return ModelRecord(
        name="riskmodel",
        algorithm="decision_tree",
        classifier=classifier,
        schema=risk_dataset.schema,
        trained_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def models_dir(tmp_path: Path) -> Path:
    """Empty artifact directory."""
    return tmp_path / "models"


@pytest.fixture
def engine_config(models_dir: Path) -> EngineConfig:
    """Engine configuration with temporary storage and no default model."""
    return EngineConfig(
        storage=StorageConfig(models_dir=models_dir),
        training=TrainingConfig(cv_folds=3),
        registry=RegistryConfig(bootstrap_default_model=False),
    )


@pytest.fixture
def engine(engine_config: EngineConfig) -> ClassifierEngine:
    """Started engine with an empty registry."""
    engine = ClassifierEngine(engine_config)
    engine.start()
    return engine
