"""
Preprocessing pipeline construction.

Builds the sklearn ColumnTransformer that turns schema-aligned rows
(floats, labels, missing values) into the numeric matrix every
estimator consumes.
"""

from typing import Any

from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from klassifikator.utils.logging import get_logger

log = get_logger(__name__)


def build_preprocessor(
    *,
    numeric_features: list[str],
    categorical_features: list[str],
) -> ColumnTransformer:
    """
    Build preprocessing ColumnTransformer for a feature schema.

    Feature groups:
    - numeric: median imputation, then standard scaling (SVMs and
      naive Bayes are scale sensitive; trees are unaffected)
    - categorical: most-frequent imputation, then one-hot encoding.
      Categories unseen during fit encode as all zeros.

    Args:
        numeric_features: Numeric feature column names.
        categorical_features: Categorical feature column names.

    Returns:
        Unfitted ColumnTransformer.
    """
    transformers: list[tuple[str, Any, list[str]]] = []

    if numeric_features:
        transformers.append((
            "numeric",
            Pipeline(
                steps=[
                    ("impute", SimpleImputer(strategy="median")),
                    ("scale", StandardScaler()),
                ]
            ),
            numeric_features,
        ))

    if categorical_features:
        transformers.append((
            "categorical",
            Pipeline(
                steps=[
                    ("impute", SimpleImputer(strategy="most_frequent")),
                    (
                        "onehot",
                        OneHotEncoder(handle_unknown="ignore", sparse_output=False),
                    ),
                ]
            ),
            categorical_features,
        ))

    preprocessor = ColumnTransformer(
        transformers=transformers,
        remainder="drop",
        sparse_threshold=0.0,
    )

    log.debug(
        "Built preprocessor",
        n_numeric=len(numeric_features),
        n_categorical=len(categorical_features),
    )
    return preprocessor
