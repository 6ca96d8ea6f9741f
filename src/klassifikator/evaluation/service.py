"""Held-out evaluation of registered models."""

from klassifikator.errors import DatasetError
from klassifikator.evaluation.metrics import EvaluationResult, compute_evaluation
from klassifikator.ingestion.dataset import DatasetLoader, Source
from klassifikator.modeling.inference import predict_labels
from klassifikator.modeling.registry import ModelRegistry
from klassifikator.utils.logging import get_logger, log_context

log = get_logger(__name__)


class EvaluationService:
    """Scores a registered model on a labeled test dataset."""

    def __init__(self, registry: ModelRegistry, loader: DatasetLoader | None = None) -> None:
        self.registry = registry
        self.loader = loader or DatasetLoader()

    def evaluate(self, model_name: str, test_source: Source) -> EvaluationResult:
        """
        Evaluate a model on test data.

        The test data is read against the model's own schema, so columns
        map positionally and the class column is the model's class column.
        Rows without a class label are not scored.

        Args:
            model_name: Registered model to evaluate.
            test_source: Test dataset path or text stream.

        Returns:
            EvaluationResult object.

        Raises:
            NotFoundError: If the model is not registered.
            DatasetError: If the test data does not fit the model schema
                or has no labeled rows.
        """
        record = self.registry.get(model_name)

        with log_context(model=record.name, algorithm=record.algorithm):
            test = self.loader.load(test_source, reference=record.schema).labeled()
            if len(test) == 0:
                msg = "Test dataset has no rows with a class label"
                raise DatasetError(msg)

            y_true = test.class_values().astype(str).tolist()
            y_pred = predict_labels(record.classifier, test)
            result = compute_evaluation(
                y_true,
                y_pred,
                record.schema.class_labels,
                model_name=record.name,
                title="Evaluation on test set",
            )
            log.info(
                "Evaluation complete",
                n_instances=result.n_instances,
                accuracy=f"{result.accuracy:.2f}",
                kappa=f"{result.kappa:.4f}",
            )
        return result
