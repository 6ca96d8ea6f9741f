"""Classifier factory, training, persistence, registry and inference."""

from klassifikator.modeling.inference import PredictionResult, PredictionService
from klassifikator.modeling.models import (
    ALGORITHM_REGISTRY,
    AlgorithmInfo,
    Classifier,
    SklearnClassifier,
    create_classifier,
    list_algorithms,
    resolve_algorithm,
)
from klassifikator.modeling.persistence import ModelStore
from klassifikator.modeling.registry import ModelInfo, ModelRecord, ModelRegistry
from klassifikator.modeling.training import TrainingPipeline, TrainingReport

__all__ = [
    "ALGORITHM_REGISTRY",
    "AlgorithmInfo",
    "Classifier",
    "ModelInfo",
    "ModelRecord",
    "ModelRegistry",
    "ModelStore",
    "PredictionResult",
    "PredictionService",
    "SklearnClassifier",
    "TrainingPipeline",
    "TrainingReport",
    "create_classifier",
    "list_algorithms",
    "resolve_algorithm",
]
