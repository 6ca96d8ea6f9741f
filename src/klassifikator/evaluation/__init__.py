"""Model evaluation: classification metrics and held-out scoring."""

from klassifikator.evaluation.metrics import EvaluationResult, compute_evaluation
from klassifikator.evaluation.service import EvaluationService

__all__ = ["EvaluationResult", "EvaluationService", "compute_evaluation"]
