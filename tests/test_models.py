"""Tests for the classifier registry and factory."""

import warnings

import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier
from sklearn.naive_bayes import GaussianNB
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

from klassifikator.errors import ValidationError
from klassifikator.modeling.models import (
    ALGORITHM_REGISTRY,
    DEFAULT_ALGORITHM,
    SklearnClassifier,
    create_classifier,
    get_algorithm_info,
    list_algorithms,
    resolve_algorithm,
)
from klassifikator.schemas import AttributeKind, AttributeSchema, Dataset


class TestAlgorithmResolution:
    """Tests for algorithm id resolution."""

    @pytest.mark.parametrize(
        ("requested", "expected"),
        [
            ("decision_tree", "decision_tree"),
            ("J48", "decision_tree"),
            ("decision-tree", "decision_tree"),
            ("RandomForest", "random_forest"),
            ("random-forest", "random_forest"),
            ("rf", "random_forest"),
            ("SMO", "svm"),
            ("support-vector-machine", "svm"),
            ("NaiveBayes", "naive_bayes"),
            ("naive-bayes", "naive_bayes"),
            ("JRip", "rules"),
            ("rule-based", "rules"),
        ],
    )
    def test_aliases(self, requested: str, expected: str) -> None:
        """Test case-insensitive alias resolution."""
        assert resolve_algorithm(requested) == expected

    @pytest.mark.parametrize("requested", ["does-not-exist", "", None])
    def test_unknown_falls_back(self, requested: str | None) -> None:
        """Test that unknown ids fall back to the decision tree."""
        assert resolve_algorithm(requested) == DEFAULT_ALGORITHM

    def test_catalog(self) -> None:
        """Test that every algorithm is listed with its family."""
        catalog = {info.id: info.family for info in list_algorithms()}
        assert catalog == {
            "decision_tree": "trees",
            "random_forest": "ensemble",
            "svm": "functions",
            "naive_bayes": "bayes",
            "rules": "rules",
        }
        assert get_algorithm_info("j48").id == "decision_tree"


class TestCreateClassifier:
    """Tests for the classifier factory."""

    @pytest.mark.parametrize(
        ("algorithm", "estimator_class"),
        [
            ("decision_tree", DecisionTreeClassifier),
            ("random_forest", RandomForestClassifier),
            ("svm", SVC),
            ("naive_bayes", GaussianNB),
            ("rules", DecisionTreeClassifier),
        ],
    )
    def test_estimator_types(self, algorithm: str, estimator_class: type) -> None:
        """Test that each id maps to its scikit-learn estimator."""
        classifier = create_classifier(algorithm)
        assert isinstance(classifier, SklearnClassifier)
        assert isinstance(classifier.estimator, estimator_class)
        assert classifier.algorithm == algorithm

    def test_fixed_hyperparameters(self) -> None:
        """Test the default hyperparameters of the tree variants."""
        tree = create_classifier("decision_tree", random_state=3).estimator
        assert tree.min_samples_leaf == 2
        assert tree.ccp_alpha == 0.01
        assert tree.random_state == 3

        rules = create_classifier("rules").estimator
        assert rules.max_depth == 4

        assert create_classifier("random_forest").estimator.n_estimators == 100
        assert create_classifier("svm").estimator.probability is True

    def test_unknown_records_canonical_id(self) -> None:
        """Test that a fallback classifier reports the canonical id."""
        assert create_classifier("mystery").algorithm == "decision_tree"


class TestSklearnClassifier:
    """Tests for fitting and scoring."""

    def test_predict_before_fit(self) -> None:
        """Test that scoring an unfitted classifier raises."""
        classifier = create_classifier("decision_tree")
        assert not classifier.is_fitted
        with pytest.raises(RuntimeError, match="has not been fitted"):
            classifier.predict_distribution([1.0, 2.0, 3.0, None])

    @pytest.mark.parametrize("algorithm", sorted(ALGORITHM_REGISTRY))
    def test_distribution_on_mixed_data(self, algorithm: str, weather_dataset: Dataset) -> None:
        """Test that every algorithm yields a valid distribution."""
        classifier = create_classifier(algorithm).fit(weather_dataset)

        distribution = classifier.predict_distribution(["sunny", 70.0, None, "TRUE", None])

        assert set(distribution) == {"no", "yes"}
        assert sum(distribution.values()) == pytest.approx(1.0, abs=1e-6)
        assert all(0.0 <= p <= 1.0 for p in distribution.values())

    def test_unseen_class_label_gets_zero(self) -> None:
        """Test that domain labels absent from training get probability zero."""
        schema = AttributeSchema.build(
            [
                ("x", AttributeKind.NUMERIC, None),
                ("y", AttributeKind.CATEGORICAL, ("a", "b", "never")),
            ]
        )
        frame = pd.DataFrame({"x": [1, 2, 3, 10, 11, 12], "y": ["a", "a", "a", "b", "b", "b"]})
        classifier = create_classifier("naive_bayes").fit(Dataset.from_frame(frame, schema))

        distribution = classifier.predict_distribution([2.0, None])

        assert list(distribution) == ["a", "b", "never"]
        assert distribution["never"] == 0.0
        assert distribution["a"] > distribution["b"]

    def test_unseen_category_is_ignored(self, weather_dataset: Dataset) -> None:
        """Test that an unknown category does not break scoring."""
        classifier = create_classifier("decision_tree").fit(weather_dataset)
        distribution = classifier.predict_distribution(["foggy", 70.0, 80.0, "FALSE", None])
        assert sum(distribution.values()) == pytest.approx(1.0, abs=1e-6)

    def test_wrong_row_length(self, risk_dataset: Dataset) -> None:
        """Test that rows not matching the schema width are rejected."""
        classifier = create_classifier("decision_tree").fit(risk_dataset)
        with pytest.raises(ValidationError, match="schema expects 4"):
            classifier.predict_distribution([25.0, 30000.0])

    def test_unlabeled_rows_are_dropped(self, risk_dataset: Dataset) -> None:
        """Test that fitting ignores rows with a missing class."""
        frame = risk_dataset.frame.copy()
        frame.loc[0, "risk"] = None
        dataset = Dataset.from_frame(frame, risk_dataset.schema)

        classifier = create_classifier("decision_tree").fit(dataset)

        assert classifier.is_fitted
        assert classifier.pipeline_ is not None

    def test_no_labeled_rows(self, risk_dataset: Dataset) -> None:
        """Test that a dataset without labels cannot be fitted."""
        frame = risk_dataset.frame.copy()
        frame["risk"] = None
        dataset = Dataset.from_frame(frame, risk_dataset.schema)

        with pytest.raises(ValidationError, match="no rows with a class label"):
            create_classifier("decision_tree").fit(dataset)

    def test_library_failure_becomes_validation_error(self, risk_dataset: Dataset) -> None:
        """Test that estimator fit errors surface as ValidationError."""
        dataset = risk_dataset.subset([0, 3])  # both rows are "medium"

        with pytest.raises(ValidationError, match="could not be fitted"):
            create_classifier("svm").fit(dataset)

    def test_svm_fit_without_future_warning(self, risk_dataset: Dataset) -> None:
        """Test that fitting the SVM does not leak the probability deprecation."""
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            classifier = create_classifier("svm").fit(risk_dataset)

        assert classifier.is_fitted
        assert not [w for w in caught if "probability" in str(w.message)]
