"""
Classifier engine facade.

Wires storage, registry and the training, prediction and evaluation
services together and exposes them as one object. Transports (CLI,
HTTP handlers) talk to the engine only.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from klassifikator.config.settings import EngineConfig
from klassifikator.errors import StorageError
from klassifikator.evaluation.metrics import EvaluationResult
from klassifikator.evaluation.service import EvaluationService
from klassifikator.ingestion.dataset import DatasetLoader, Source
from klassifikator.modeling.inference import PredictionResult, PredictionService
from klassifikator.modeling.models import AlgorithmInfo, list_algorithms
from klassifikator.modeling.persistence import ModelStore
from klassifikator.modeling.registry import ModelInfo, ModelRegistry, validate_model_name
from klassifikator.modeling.training import TrainingPipeline, TrainingReport
from klassifikator.schemas.attributes import AttributeKind, AttributeSchema, Dataset
from klassifikator.utils.logging import get_logger
from klassifikator.utils.uploads import scoped_upload

log = get_logger(__name__)

# Built-in credit risk dataset used when storage holds no models
DEFAULT_MODEL_ROWS = [
    (25.0, 30000.0, 650.0, "medium"),
    (45.0, 80000.0, 750.0, "low"),
    (35.0, 45000.0, 600.0, "high"),
    (28.0, 35000.0, 680.0, "medium"),
    (52.0, 95000.0, 780.0, "low"),
    (30.0, 28000.0, 580.0, "high"),
]


def default_dataset() -> Dataset:
    """Six-row credit risk dataset: age, income, credit_score -> risk."""
    schema = AttributeSchema.build(
        [
            ("age", AttributeKind.NUMERIC, None),
            ("income", AttributeKind.NUMERIC, None),
            ("credit_score", AttributeKind.NUMERIC, None),
            ("risk", AttributeKind.CATEGORICAL, ("low", "medium", "high")),
        ],
        relation="DefaultModel",
    )
    frame = pd.DataFrame(DEFAULT_MODEL_ROWS, columns=schema.names)
    return Dataset.from_frame(frame, schema)


class ClassifierEngine:
    """
    Single entry point for the classifier lifecycle.

    Example:
        engine = ClassifierEngine(load_config("configs/engine.yaml"))
        engine.start()
        report = engine.train("data/risk.csv", "j48", "riskmodel")
        result = engine.predict({"age": 26, "income": 31000}, "riskmodel")
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """
        Initialize engine components.

        Args:
            config: Engine configuration (default: EngineConfig()).
        """
        self.config = config or EngineConfig()
        self.store = ModelStore(self.config.models_dir)
        self.registry = ModelRegistry()
        self.loader = DatasetLoader()
        self.training = TrainingPipeline(
            self.registry, self.store, self.loader, self.config.training
        )
        self.prediction = PredictionService(self.registry)
        self.evaluation = EvaluationService(self.registry, self.loader)

    def start(self) -> None:
        """
        Reload persisted models and bootstrap the default model if needed.

        Raises:
            StorageError: If the models directory cannot be created.
        """
        try:
            self.config.models_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create models directory {self.config.models_dir}: {e}"
            raise StorageError(msg) from e

        for record in self.store.scan():
            self.registry.register(record)

        if len(self.registry) == 0 and self.config.registry.bootstrap_default_model:
            name = self.config.registry.default_model_name
            log.info("No models found, training default model", model=name)
            self.training.train_dataset(default_dataset(), "decision_tree", name)

        log.info(
            "Engine started",
            n_models=len(self.registry),
            active_model=self.registry.active_name,
            models_dir=str(self.config.models_dir),
        )

    def train(
        self,
        source: Source,
        algorithm_id: str | None,
        model_name: str,
        class_index: int | None = None,
    ) -> TrainingReport:
        """Train and register a model; see TrainingPipeline.train."""
        _, report = self.training.train(source, algorithm_id, model_name, class_index)
        return report

    def train_upload(
        self,
        upload: Path | str,
        algorithm_id: str | None,
        model_name: str,
        class_index: int | None = None,
    ) -> TrainingReport:
        """Train from an uploaded temp file, deleting it afterwards."""
        with scoped_upload(upload) as path:
            return self.train(path, algorithm_id, model_name, class_index)

    def predict(
        self,
        features: Mapping[str, Any],
        model_name: str | None = None,
    ) -> PredictionResult:
        """Predict one request with the named or active model."""
        return self.prediction.predict(features, model_name)

    def predict_batch(
        self,
        items: Sequence[Mapping[str, Any]],
        model_name: str | None = None,
    ) -> list[PredictionResult]:
        """Predict a batch, skipping malformed items."""
        return self.prediction.predict_batch(items, model_name)

    def evaluate(self, model_name: str, test_source: Source) -> EvaluationResult:
        """Evaluate a model on labeled test data."""
        return self.evaluation.evaluate(model_name, test_source)

    def evaluate_upload(self, model_name: str, upload: Path | str) -> EvaluationResult:
        """Evaluate on an uploaded temp file, deleting it afterwards."""
        with scoped_upload(upload) as path:
            return self.evaluate(model_name, path)

    def list_models(self) -> list[ModelInfo]:
        """Describe every registered model."""
        return self.registry.describe_all()

    def get_model_info(self, model_name: str) -> ModelInfo:
        """Describe one registered model."""
        return self.registry.describe(model_name)

    def activate(self, model_name: str) -> None:
        """Make a registered model the default for predictions."""
        self.registry.activate(model_name)

    def delete(self, model_name: str) -> None:
        """Remove a model from the registry and from storage."""
        self.registry.delete(model_name, on_commit=self.store.delete)

    def load_model(self, model_name: str) -> ModelInfo:
        """
        Reload a model from storage into the registry.

        Raises:
            NotFoundError: If no complete artifact pair exists.
            StorageError: If the artifacts cannot be read.
        """
        validate_model_name(model_name)
        record = self.store.load(model_name)
        self.registry.register(record)
        return self.registry.describe(model_name)

    def list_algorithms(self) -> list[AlgorithmInfo]:
        """Catalog of supported algorithms."""
        return list_algorithms()

    def status(self) -> dict[str, Any]:
        """Registry summary."""
        return {
            "n_models": len(self.registry),
            "active_model": self.registry.active_name,
            "models": self.registry.names(),
            "models_dir": str(self.config.models_dir),
        }
