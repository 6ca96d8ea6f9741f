"""Tests for classification metrics and held-out evaluation."""

import io
from pathlib import Path

import numpy as np
import pytest

from klassifikator.errors import DatasetError, NotFoundError
from klassifikator.evaluation import EvaluationService, compute_evaluation
from klassifikator.evaluation.metrics import format_confusion_matrix
from klassifikator.modeling.persistence import ModelStore
from klassifikator.modeling.registry import ModelRegistry
from klassifikator.modeling.training import TrainingPipeline


class TestComputeEvaluation:
    """Tests for compute_evaluation."""

    def test_known_values(self) -> None:
        """Test metrics against hand-computed values."""
        result = compute_evaluation(
            ["a", "a", "b", "b"], ["a", "b", "b", "b"], ["a", "b"], model_name="m"
        )

        assert result.n_instances == 4
        assert result.n_correct == 3
        assert result.accuracy == pytest.approx(75.0)
        assert result.kappa == pytest.approx(0.5)
        assert result.precision == pytest.approx((1.0 + 2 / 3) / 2)
        assert result.recall == pytest.approx(0.75)
        assert result.f1 == pytest.approx((2 / 3 + 0.8) / 2)

    def test_perfect_single_class(self) -> None:
        """Test that undefined kappa maps to 1.0 when all rows are correct."""
        result = compute_evaluation(["a", "a"], ["a", "a"], ["a", "b"], model_name="m")
        assert result.accuracy == 100.0
        assert result.kappa == 1.0

    def test_wrong_single_class(self) -> None:
        """Test that undefined kappa maps to 0.0 otherwise."""
        result = compute_evaluation(["a", "a"], ["b", "b"], ["a", "b"], model_name="m")
        assert result.accuracy == 0.0
        assert result.kappa == 0.0

    def test_empty(self) -> None:
        """Test that no rows yields zero metrics."""
        result = compute_evaluation([], [], ["a", "b"], model_name="m")
        assert result.n_instances == 0
        assert result.accuracy == 0.0
        assert result.kappa == 0.0
        assert result.f1 == 0.0

    def test_length_mismatch(self) -> None:
        """Test that misaligned label lists are rejected."""
        with pytest.raises(ValueError, match="Length mismatch"):
            compute_evaluation(["a"], [], ["a"], model_name="m")

    def test_text_reports(self) -> None:
        """Test the summary, matrix and detail texts."""
        result = compute_evaluation(
            ["low", "high", "high"], ["low", "high", "low"], ["low", "high"], model_name="m"
        )

        assert "Correctly Classified Instances" in result.summary
        assert "Kappa statistic" in result.summary
        assert "Total Number of Instances" in result.summary
        assert result.confusion_matrix.splitlines()[2] == " a b   <-- classified as"
        assert result.confusion_matrix.splitlines()[3] == " 1 0 | a = low"
        assert result.confusion_matrix.splitlines()[4] == " 1 1 | b = high"
        assert "Weighted Avg." in result.class_details
        assert result.to_dict()["n_correct"] == 2

    def test_matrix_keys_beyond_alphabet(self) -> None:
        """Test that more than 26 classes get two-letter keys."""
        labels = [f"c{i}" for i in range(28)]
        text = format_confusion_matrix(np.zeros((28, 28), dtype=int), labels)
        assert text.splitlines()[-1].endswith("| bb = c27")


class TestEvaluationService:
    """Tests for EvaluationService."""

    @pytest.fixture
    def service(self, models_dir: Path, weather_csv: Path) -> EvaluationService:
        """Service over a registry holding a weather model."""
        registry = ModelRegistry()
        TrainingPipeline(registry, ModelStore(models_dir)).train(weather_csv, "naive_bayes", "weather")
        return EvaluationService(registry)

    def test_evaluate_on_training_data(self, service: EvaluationService, weather_csv: Path) -> None:
        """Test evaluation on the full training file."""
        result = service.evaluate("weather", weather_csv)

        assert result.model_name == "weather"
        assert result.n_instances == 14
        assert 0.0 <= result.accuracy <= 100.0
        assert "Evaluation on test set" in result.summary

    def test_unlabeled_rows_are_skipped(self, service: EvaluationService) -> None:
        """Test that rows without a class label are not scored."""
        text = (
            "outlook,temperature,humidity,windy,play\n"
            "sunny,85,85,FALSE,no\n"
            "foggy,60,99,TRUE,?\n"
            "overcast,83,86,FALSE,yes\n"
        )
        result = service.evaluate("weather", io.StringIO(text))
        assert result.n_instances == 2

    def test_no_labeled_rows(self, service: EvaluationService) -> None:
        """Test that a test set without labels is rejected."""
        text = "outlook,temperature,humidity,windy,play\nsunny,85,85,FALSE,?\n"
        with pytest.raises(DatasetError, match="no rows with a class label"):
            service.evaluate("weather", io.StringIO(text))

    def test_attribute_count_mismatch(self, service: EvaluationService) -> None:
        """Test that test data with another width is rejected."""
        text = "outlook,temperature,play\nsunny,85,no\n"
        with pytest.raises(DatasetError, match="attributes"):
            service.evaluate("weather", io.StringIO(text))

    def test_unknown_model(self, service: EvaluationService, weather_csv: Path) -> None:
        """Test that unknown models raise NotFoundError."""
        with pytest.raises(NotFoundError):
            service.evaluate("nope", weather_csv)
