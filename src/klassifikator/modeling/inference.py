"""
Prediction serving against registered models.

Resolves a model from the registry, aligns the request with the model's
schema and returns the class distribution with the winning label.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from klassifikator.errors import ValidationError
from klassifikator.features.builder import FeatureVectorBuilder
from klassifikator.modeling.models import Classifier
from klassifikator.modeling.registry import ModelRecord, ModelRegistry
from klassifikator.schemas.attributes import Dataset
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class PredictionResult:
    """
    Container for a single prediction.

    Attributes:
        prediction: Winning class label.
        confidence: Probability of the winning label.
        distribution: Probability for every label of the class domain.
        model_name: Model that produced the prediction.
        algorithm: Algorithm of that model.
    """

    prediction: str
    confidence: float
    distribution: dict[str, float] = field(default_factory=dict)
    model_name: str = ""
    algorithm: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "prediction": self.prediction,
            "confidence": self.confidence,
            "distribution": dict(self.distribution),
            "model_name": self.model_name,
            "algorithm": self.algorithm,
        }


def select_prediction(
    distribution: Mapping[str, float],
    labels: Sequence[str],
) -> tuple[str, float]:
    """
    Pick the most probable label.

    Ties go to the label that comes first in the class domain.

    Args:
        distribution: Label -> probability.
        labels: Class domain in declaration order.

    Returns:
        Tuple of (label, probability).
    """
    best_label = labels[0]
    best_p = distribution.get(best_label, 0.0)
    for label in labels[1:]:
        p = distribution.get(label, 0.0)
        if p > best_p:
            best_label, best_p = label, p
    return best_label, best_p


def predict_labels(classifier: Classifier, dataset: Dataset) -> list[str]:
    """Winning label for every row of a dataset."""
    labels = dataset.schema.class_labels
    return [
        select_prediction(classifier.predict_distribution(row), labels)[0]
        for row in dataset.rows()
    ]


class PredictionService:
    """Serves single and batch predictions from the model registry."""

    def __init__(
        self,
        registry: ModelRegistry,
        builder: FeatureVectorBuilder | None = None,
    ) -> None:
        """
        Initialize prediction service.

        Args:
            registry: Registry to resolve models from.
            builder: Feature vector builder (default: new instance).
        """
        self.registry = registry
        self.builder = builder or FeatureVectorBuilder()

    def predict(
        self,
        features: Mapping[str, Any],
        model_name: str | None = None,
    ) -> PredictionResult:
        """
        Predict the class of one request.

        Args:
            features: Attribute name -> value.
            model_name: Model to use (default: the active model).

        Returns:
            PredictionResult object.

        Raises:
            NotFoundError: If the model is unknown or no model is active.
            ValidationError: If a feature value is malformed.
        """
        record = self.registry.get(model_name)
        return self._predict_one(record, features)

    def predict_batch(
        self,
        items: Sequence[Mapping[str, Any]],
        model_name: str | None = None,
    ) -> list[PredictionResult]:
        """
        Predict a list of requests with one model.

        The model is resolved once for the whole batch. Malformed items
        are logged and skipped, so the result can be shorter than the
        input.

        Args:
            items: Requests in order.
            model_name: Model to use (default: the active model).

        Returns:
            Results for the items that could be predicted, in input order.

        Raises:
            NotFoundError: If the model is unknown or no model is active.
        """
        record = self.registry.get(model_name)

        results: list[PredictionResult] = []
        for position, features in enumerate(items):
            try:
                results.append(self._predict_one(record, features))
            except (ValidationError, ValueError) as e:
                log.warning(
                    "Skipping batch item",
                    model=record.name,
                    position=position,
                    error=str(e),
                )

        log.info(
            "Batch prediction complete",
            model=record.name,
            n_items=len(items),
            n_predictions=len(results),
            n_failures=len(items) - len(results),
        )
        return results

    def _predict_one(
        self,
        record: ModelRecord,
        features: Mapping[str, Any],
    ) -> PredictionResult:
        """Build the row, score it and pick the winning label."""
        row = self.builder.build(features, record.schema)
        distribution = record.classifier.predict_distribution(row)
        label, confidence = select_prediction(distribution, record.schema.class_labels)
        return PredictionResult(
            prediction=label,
            confidence=confidence,
            distribution=distribution,
            model_name=record.name,
            algorithm=record.algorithm,
        )
