"""
Classifier registry and factory.

Maps algorithm identifiers to scikit-learn estimators with fixed default
hyperparameters and wraps them behind the two-operation Classifier
capability (fit, predict_distribution) the rest of the engine uses.
"""

import warnings
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone
from sklearn.ensemble import RandomForestClassifier
from sklearn.naive_bayes import GaussianNB
from sklearn.pipeline import Pipeline
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

from klassifikator.errors import ValidationError
from klassifikator.modeling.preprocessing import build_preprocessor
from klassifikator.schemas.attributes import Dataset, Value
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_ALGORITHM = "decision_tree"


@dataclass(frozen=True)
class AlgorithmInfo:
    """
    Catalog entry for a supported algorithm.

    Attributes:
        id: Canonical identifier recorded on trained models.
        family: Algorithm family (trees, ensemble, functions, bayes, rules).
        description: Human-readable description.
        aliases: Other identifiers accepted for this algorithm.
    """

    id: str
    family: str
    description: str
    aliases: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "family": self.family,
            "description": self.description,
            "aliases": list(self.aliases),
        }


# Algorithm configurations: id -> (estimator class, default kwargs, info)
ALGORITHM_REGISTRY: dict[str, tuple[type[BaseEstimator], dict[str, Any], AlgorithmInfo]] = {
    "decision_tree": (
        DecisionTreeClassifier,
        {
            "min_samples_leaf": 2,  # at least two instances per leaf
            "ccp_alpha": 0.01,  # cost-complexity pruning
        },
        AlgorithmInfo(
            id="decision_tree",
            family="trees",
            description="Pruned decision tree",
            aliases=("j48", "tree", "decisiontree", "c45"),
        ),
    ),
    "random_forest": (
        RandomForestClassifier,
        {"n_estimators": 100},
        AlgorithmInfo(
            id="random_forest",
            family="ensemble",
            description="Random forest of 100 decision trees",
            aliases=("randomforest", "rf", "forest"),
        ),
    ),
    "svm": (
        SVC,
        {"kernel": "rbf", "C": 1.0, "probability": True},
        AlgorithmInfo(
            id="svm",
            family="functions",
            description="Support vector machine with probability estimates",
            aliases=("smo", "support_vector_machine", "svc"),
        ),
    ),
    "naive_bayes": (
        GaussianNB,
        {},
        AlgorithmInfo(
            id="naive_bayes",
            family="bayes",
            description="Gaussian naive Bayes",
            aliases=("naivebayes", "nb", "bayes"),
        ),
    ),
    "rules": (
        DecisionTreeClassifier,
        {
            # Shallow tree; every root-to-leaf path reads as one rule
            "max_depth": 4,
            "min_samples_leaf": 2,
        },
        AlgorithmInfo(
            id="rules",
            family="rules",
            description="Compact rule set (one rule per leaf of a shallow tree)",
            aliases=("jrip", "rule_based", "ripper"),
        ),
    ),
}

_ALIASES: dict[str, str] = {
    alias: algorithm_id
    for algorithm_id, (_, _, info) in ALGORITHM_REGISTRY.items()
    for alias in (algorithm_id, *info.aliases)
}


def _normalise(algorithm_id: str) -> str:
    return algorithm_id.strip().lower().replace("-", "_").replace(" ", "_")


def resolve_algorithm(algorithm_id: str | None) -> str:
    """
    Resolve an algorithm identifier or alias to its canonical id.

    Unknown identifiers fall back to the decision tree. This is a
    documented policy, not an error, but it is logged so typos show up.

    Args:
        algorithm_id: Identifier as supplied by the caller.

    Returns:
        Canonical algorithm id.
    """
    if algorithm_id:
        resolved = _ALIASES.get(_normalise(algorithm_id))
        if resolved is not None:
            return resolved

    log.warning(
        "Unknown algorithm, falling back to default",
        requested=algorithm_id,
        fallback=DEFAULT_ALGORITHM,
    )
    return DEFAULT_ALGORITHM


def get_algorithm_info(algorithm_id: str) -> AlgorithmInfo:
    """Catalog entry for a canonical id or alias (with fallback)."""
    return ALGORITHM_REGISTRY[resolve_algorithm(algorithm_id)][2]


def list_algorithms() -> list[AlgorithmInfo]:
    """List all supported algorithms."""
    return [info for _, _, info in ALGORITHM_REGISTRY.values()]


class Classifier(ABC):
    """
    Trainable classification capability.

    Exposes exactly two operations: fit() on a dataset, and
    predict_distribution() for one schema-aligned row once fitted.
    """

    def __init__(self, algorithm: str) -> None:
        self.algorithm = algorithm
        self._is_fitted = False

    @abstractmethod
    def fit(self, dataset: Dataset) -> "Classifier":
        """
        Fit on every labeled row of the dataset.

        Returns:
            self (for method chaining)

        Raises:
            ValidationError: If the learning library rejects the data.
        """
        ...

    @abstractmethod
    def predict_distribution(self, row: Sequence[Value]) -> dict[str, float]:
        """
        Class probability distribution for one row.

        Args:
            row: Row aligned with the training schema (class slot ignored).

        Returns:
            Mapping of every class-domain label to its probability.

        Raises:
            RuntimeError: If the classifier has not been fitted.
        """
        ...

    @property
    def is_fitted(self) -> bool:
        """Whether the classifier has been fitted."""
        return self._is_fitted

    def _check_is_fitted(self) -> None:
        """Raise RuntimeError if not fitted."""
        if not self._is_fitted:
            raise RuntimeError(
                f"{self.__class__.__name__} has not been fitted. "
                "Call fit() before predict_distribution()."
            )


class SklearnClassifier(Classifier):
    """Classifier backed by a scikit-learn preprocessing + estimator pipeline."""

    def __init__(self, algorithm: str, estimator: BaseEstimator) -> None:
        super().__init__(algorithm)
        self.estimator = estimator
        self.pipeline_: Pipeline | None = None
        self.class_labels_: tuple[str, ...] = ()
        self.class_index_: int = -1
        self.n_attributes_: int = 0
        self.numeric_features_: list[str] = []
        self.categorical_features_: list[str] = []
        self.feature_names_: list[str] = []
        self.feature_positions_: list[int] = []

    def fit(self, dataset: Dataset) -> "SklearnClassifier":
        """Fit the pipeline on every labeled row of the dataset."""
        schema = dataset.schema
        labeled = dataset.labeled()
        if len(labeled) == 0:
            msg = "Dataset has no rows with a class label"
            raise ValidationError(msg)

        features = schema.feature_attributes
        self.numeric_features_ = [a.name for a in features if a.is_numeric]
        self.categorical_features_ = [a.name for a in features if not a.is_numeric]
        self.feature_names_ = [a.name for a in features]
        self.feature_positions_ = [a.index for a in features]
        self.class_labels_ = schema.class_labels
        self.class_index_ = schema.class_index
        self.n_attributes_ = len(schema)

        X = self._coerce(labeled.frame[self.feature_names_])
        y = labeled.class_values().astype(str).to_numpy()

        pipeline = Pipeline(
            steps=[
                (
                    "preprocessor",
                    build_preprocessor(
                        numeric_features=self.numeric_features_,
                        categorical_features=self.categorical_features_,
                    ),
                ),
                ("model", clone(self.estimator)),
            ]
        )

        try:
            with warnings.catch_warnings():
                # SVC probability estimates are deprecated upstream; pinned below removal
                warnings.filterwarnings("ignore", message=".*probability.*", category=FutureWarning)
                pipeline.fit(X, y)
        except ValueError as e:
            msg = f"{self.algorithm} could not be fitted: {e}"
            raise ValidationError(msg) from e

        self.pipeline_ = pipeline
        self._is_fitted = True
        log.debug(
            "Fitted classifier",
            algorithm=self.algorithm,
            n_samples=len(X),
            n_features=X.shape[1],
            classes=list(pipeline.classes_),
        )
        return self

    def predict_distribution(self, row: Sequence[Value]) -> dict[str, float]:
        """Probability per class label, summing to one."""
        self._check_is_fitted()
        if len(row) != self.n_attributes_:
            msg = f"Row has {len(row)} values, schema expects {self.n_attributes_}"
            raise ValidationError(msg)

        values = [row[position] for position in self.feature_positions_]
        X = self._coerce(pd.DataFrame([values], columns=self.feature_names_))

        proba = self.pipeline_.predict_proba(X)[0]

        distribution = {label: 0.0 for label in self.class_labels_}
        for label, p in zip(self.pipeline_.classes_, proba):
            distribution[str(label)] = float(p)

        total = sum(distribution.values())
        if total > 0:
            distribution = {k: v / total for k, v in distribution.items()}
        return distribution

    def _coerce(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Numeric columns to float64, categorical to label strings with NaN."""
        coerced = pd.DataFrame(index=frame.index)
        for name in self.numeric_features_:
            coerced[name] = pd.to_numeric(frame[name], errors="coerce").astype("float64")
        for name in self.categorical_features_:
            coerced[name] = pd.Series(
                [np.nan if pd.isna(v) else str(v) for v in frame[name]],
                index=frame.index,
                dtype=object,
            )
        return coerced


def create_classifier(
    algorithm_id: str | None,
    *,
    random_state: int | None = 1,
) -> SklearnClassifier:
    """
    Create an unfitted classifier for an algorithm id.

    Args:
        algorithm_id: Canonical id or alias; unknown ids fall back to the
            decision tree.
        random_state: Seed for estimators that use randomness.

    Returns:
        Unfitted classifier.
    """
    algorithm = resolve_algorithm(algorithm_id)
    estimator_class, default_kwargs = ALGORITHM_REGISTRY[algorithm][:2]
    params = dict(default_kwargs)
    if "random_state" in estimator_class().get_params():
        params["random_state"] = random_state

    log.debug("Creating classifier", algorithm=algorithm, params=params)
    return SklearnClassifier(algorithm, estimator_class(**params))
