"""
Model training functionality.

Provides the training pipeline: load, fit, cross-validate, then persist
and register in one commit step.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import numpy as np
from sklearn.model_selection import KFold, StratifiedKFold

from klassifikator.config.settings import TrainingConfig
from klassifikator.evaluation.metrics import EvaluationResult, compute_evaluation
from klassifikator.ingestion.dataset import DatasetLoader, Source
from klassifikator.modeling.inference import predict_labels
from klassifikator.modeling.models import Classifier, create_classifier, resolve_algorithm
from klassifikator.modeling.persistence import ModelStore
from klassifikator.modeling.registry import ModelRecord, ModelRegistry, validate_model_name
from klassifikator.schemas.attributes import Dataset
from klassifikator.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass(frozen=True)
class TrainingReport:
    """
    Outcome of a training run.

    Attributes:
        model_name: Registered model name.
        algorithm: Canonical algorithm id.
        training_time_ms: Wall time of the full-data fit.
        n_instances: Rows in the training dataset.
        n_attributes: Attributes including the class.
        evaluation: Cross-validated evaluation.
    """

    model_name: str
    algorithm: str
    training_time_ms: float
    n_instances: int
    n_attributes: int
    evaluation: EvaluationResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "model_name": self.model_name,
            "algorithm": self.algorithm,
            "training_time_ms": self.training_time_ms,
            "n_instances": self.n_instances,
            "n_attributes": self.n_attributes,
            "evaluation": self.evaluation.to_dict(),
        }


class TrainingPipeline:
    """
    Trains classifiers and commits them to storage and the registry.

    Fitting and cross-validation run without any lock. Only the final
    persist-and-register step holds the registry write lock, and the
    registry is untouched unless that step succeeds.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        store: ModelStore,
        loader: DatasetLoader | None = None,
        config: TrainingConfig | None = None,
    ) -> None:
        """
        Initialize training pipeline.

        Args:
            registry: Registry receiving trained models.
            store: Artifact store written before registration.
            loader: Dataset loader (default: new instance).
            config: Training configuration (default: TrainingConfig()).
        """
        self.registry = registry
        self.store = store
        self.loader = loader or DatasetLoader()
        self.config = config or TrainingConfig()

    def train(
        self,
        source: Source,
        algorithm_id: str | None,
        model_name: str,
        class_index: int | None = None,
    ) -> tuple[ModelRecord, TrainingReport]:
        """
        Train a model from a dataset source and register it.

        Args:
            source: Dataset path or text stream (ARFF or delimited).
            algorithm_id: Algorithm id or alias (default from config).
            model_name: Registry name; an existing model is replaced.
            class_index: Class column position (default: last column).

        Returns:
            Tuple of (registered record, training report).

        Raises:
            ValidationError: If the name is invalid or fitting fails.
            DatasetError: If the dataset cannot be loaded.
            StorageError: If the artifacts cannot be written.
        """
        validate_model_name(model_name)
        with log_context(model=model_name):
            dataset = self.loader.load(source, class_index)
            return self.train_dataset(dataset, algorithm_id, model_name)

    def train_dataset(
        self,
        dataset: Dataset,
        algorithm_id: str | None,
        model_name: str,
    ) -> tuple[ModelRecord, TrainingReport]:
        """
        Train a model on an in-memory dataset and register it.

        Args:
            dataset: Training dataset.
            algorithm_id: Algorithm id or alias (default from config).
            model_name: Registry name; an existing model is replaced.

        Returns:
            Tuple of (registered record, training report).
        """
        validate_model_name(model_name)
        algorithm = resolve_algorithm(algorithm_id or self.config.default_algorithm)

        with log_context(model=model_name, algorithm=algorithm):
            log.info(
                "Starting training",
                n_instances=len(dataset),
                n_attributes=dataset.num_attributes,
            )

            classifier = create_classifier(algorithm, random_state=self.config.random_state)
            training_start = time.perf_counter()
            classifier.fit(dataset)
            training_time_ms = (time.perf_counter() - training_start) * 1000.0

            evaluation = self.cross_validate(dataset, algorithm, model_name, classifier)

            record = ModelRecord(
                name=model_name,
                algorithm=algorithm,
                classifier=classifier,
                schema=dataset.schema,
                trained_at=datetime.now(timezone.utc),
            )
            self.registry.register(record, on_commit=self.store.save)

            report = TrainingReport(
                model_name=model_name,
                algorithm=algorithm,
                training_time_ms=training_time_ms,
                n_instances=len(dataset),
                n_attributes=dataset.num_attributes,
                evaluation=evaluation,
            )
            log.info(
                "Training complete",
                training_time_ms=f"{training_time_ms:.1f}",
                accuracy=f"{evaluation.accuracy:.2f}",
                kappa=f"{evaluation.kappa:.4f}",
            )
        return record, report

    def cross_validate(
        self,
        dataset: Dataset,
        algorithm: str,
        model_name: str,
        fitted: Classifier,
    ) -> EvaluationResult:
        """
        Estimate out-of-sample quality with k-fold cross-validation.

        k is the configured fold count clamped to the number of labeled
        rows. Folds are stratified when every class has at least k rows.
        Each fold gets a fresh classifier. With fewer than two labeled
        rows the already fitted classifier is scored on the training rows.

        Args:
            dataset: Full training dataset.
            algorithm: Canonical algorithm id.
            model_name: Name recorded on the result.
            fitted: Classifier fitted on the full dataset.

        Returns:
            EvaluationResult over all held-out predictions.
        """
        labeled = dataset.labeled()
        labels = list(dataset.schema.class_labels)
        y = labeled.class_values().astype(str).to_numpy()

        if len(labeled) < 2:
            log.warning(
                "Too few labeled rows for cross-validation, evaluating on training data",
                n_labeled=len(labeled),
            )
            return compute_evaluation(
                y,
                predict_labels(fitted, labeled),
                labels,
                model_name=model_name,
                title="Evaluation on training set",
            )

        n_folds = min(self.config.cv_folds, len(labeled))
        _, counts = np.unique(y, return_counts=True)
        if counts.min() >= n_folds:
            cv: KFold | StratifiedKFold = StratifiedKFold(
                n_splits=n_folds, shuffle=True, random_state=self.config.random_state
            )
        else:
            cv = KFold(n_splits=n_folds, shuffle=True, random_state=self.config.random_state)

        y_true: list[str] = []
        y_pred: list[str] = []
        for train_idx, test_idx in cv.split(np.zeros(len(y)), y):
            fold_classifier = create_classifier(algorithm, random_state=self.config.random_state)
            fold_classifier.fit(labeled.subset(train_idx))
            test = labeled.subset(test_idx)
            y_true.extend(test.class_values().astype(str))
            y_pred.extend(predict_labels(fold_classifier, test))

        stratified = isinstance(cv, StratifiedKFold)
        log.info("Cross-validation complete", n_folds=n_folds, stratified=stratified)
        title = f"{'Stratified c' if stratified else 'C'}ross-validation ({n_folds} folds)"
        return compute_evaluation(y_true, y_pred, labels, model_name=model_name, title=title)
