"""
Evaluation metrics for classification models.

Computes accuracy, kappa and weighted precision/recall/F1 with
scikit-learn and renders the summary, confusion matrix and per-class
details as fixed-width text reports.
"""

import math
import string
import warnings
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from sklearn.metrics import (
    cohen_kappa_score,
    confusion_matrix,
    precision_recall_fscore_support,
)

from klassifikator.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """
    Classification quality of a model on a set of labeled rows.

    Attributes:
        model_name: Evaluated model.
        accuracy: Percent of rows classified correctly (0-100).
        kappa: Cohen's kappa statistic.
        precision: Support-weighted precision.
        recall: Support-weighted recall.
        f1: Support-weighted F-measure.
        summary: Summary report text.
        confusion_matrix: Confusion matrix text.
        class_details: Per-class detail text.
        n_instances: Number of rows evaluated.
        n_correct: Number of rows classified correctly.
    """

    model_name: str
    accuracy: float
    kappa: float
    precision: float
    recall: float
    f1: float
    summary: str
    confusion_matrix: str
    class_details: str
    n_instances: int
    n_correct: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "model_name": self.model_name,
            "accuracy": self.accuracy,
            "kappa": self.kappa,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "summary": self.summary,
            "confusion_matrix": self.confusion_matrix,
            "class_details": self.class_details,
            "n_instances": self.n_instances,
            "n_correct": self.n_correct,
        }

    def __str__(self) -> str:
        """String representation."""
        return (
            f"Accuracy={self.accuracy:.2f}%, Kappa={self.kappa:.4f}, "
            f"F1={self.f1:.4f} (n={self.n_instances})"
        )


def _kappa(y_true: np.ndarray, y_pred: np.ndarray, labels: list[str]) -> float:
    """Cohen's kappa; undefined cases map to 1.0 if all correct, else 0.0."""
    if len(y_true) == 0:
        return 0.0
    with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
        warnings.simplefilter("ignore")
        kappa = float(cohen_kappa_score(y_true, y_pred, labels=labels))
    if math.isnan(kappa):
        return 1.0 if bool(np.all(y_true == y_pred)) else 0.0
    return kappa


def _matrix_key(i: int) -> str:
    """Column key for the confusion matrix: a, b, ..., z, ba, bb, ..."""
    letters = string.ascii_lowercase
    key = letters[i % 26]
    i //= 26
    while i:
        key = letters[i % 26] + key
        i //= 26
    return key


def format_summary(
    n_correct: int,
    n_instances: int,
    kappa: float,
    title: str = "Summary",
) -> str:
    """Summary block with correct/incorrect counts and kappa."""
    n_incorrect = n_instances - n_correct
    pct_correct = 100.0 * n_correct / n_instances if n_instances else 0.0
    pct_incorrect = 100.0 * n_incorrect / n_instances if n_instances else 0.0
    lines = [
        f"=== {title} ===",
        "",
        f"{'Correctly Classified Instances':<40}{n_correct:>8}{pct_correct:>14.4f} %",
        f"{'Incorrectly Classified Instances':<40}{n_incorrect:>8}{pct_incorrect:>14.4f} %",
        f"{'Kappa statistic':<40}{kappa:>8.4f}",
        f"{'Total Number of Instances':<40}{n_instances:>8}",
    ]
    return "\n".join(lines) + "\n"


def format_confusion_matrix(matrix: np.ndarray, labels: Sequence[str]) -> str:
    """
    Confusion matrix with one lettered column per predicted class.

    Rows are actual classes, columns are predicted classes, e.g.::

         a b c   <-- classified as
         2 0 0 | a = low
    """
    keys = [_matrix_key(i) for i in range(len(labels))]
    width = max([len(str(int(v))) for v in matrix.ravel()] + [len(k) for k in keys] + [1])
    header = "".join(f" {k:>{width}}" for k in keys) + "   <-- classified as"
    lines = ["=== Confusion Matrix ===", "", header]
    for i, (key, label) in enumerate(zip(keys, labels)):
        cells = "".join(f" {int(v):>{width}}" for v in matrix[i])
        lines.append(f"{cells} | {key} = {label}")
    return "\n".join(lines) + "\n"


def format_class_details(
    matrix: np.ndarray,
    labels: Sequence[str],
    precision: np.ndarray,
    recall: np.ndarray,
    f1: np.ndarray,
    support: np.ndarray,
) -> str:
    """Per-class TP rate, FP rate, precision, recall and F-measure."""
    total = int(matrix.sum())
    header = (
        f"{'':<16}{'TP Rate':>9}{'FP Rate':>9}{'Precision':>11}"
        f"{'Recall':>9}{'F-Measure':>11}   Class"
    )
    lines = ["=== Detailed Accuracy By Class ===", "", header]

    fp_rates = []
    for i, label in enumerate(labels):
        false_positives = int(matrix[:, i].sum() - matrix[i, i])
        negatives = total - int(matrix[i].sum())
        fp_rate = false_positives / negatives if negatives else 0.0
        fp_rates.append(fp_rate)
        lines.append(
            f"{'':<16}{recall[i]:>9.3f}{fp_rate:>9.3f}{precision[i]:>11.3f}"
            f"{recall[i]:>9.3f}{f1[i]:>11.3f}   {label}"
        )

    weights = support / support.sum() if support.sum() else np.zeros(len(labels))
    lines.append(
        f"{'Weighted Avg.':<16}{float(np.dot(weights, recall)):>9.3f}"
        f"{float(np.dot(weights, fp_rates)):>9.3f}"
        f"{float(np.dot(weights, precision)):>11.3f}"
        f"{float(np.dot(weights, recall)):>9.3f}"
        f"{float(np.dot(weights, f1)):>11.3f}"
    )
    return "\n".join(lines) + "\n"


def compute_evaluation(
    y_true: Sequence[str],
    y_pred: Sequence[str],
    labels: Sequence[str],
    *,
    model_name: str,
    title: str = "Summary",
) -> EvaluationResult:
    """
    Compute classification metrics and text reports.

    Args:
        y_true: Actual class labels.
        y_pred: Predicted class labels, same length as y_true.
        labels: Class domain in declaration order.
        model_name: Name recorded on the result.
        title: Heading of the summary block.

    Returns:
        EvaluationResult object.
    """
    y_true_arr = np.asarray([str(v) for v in y_true], dtype=object)
    y_pred_arr = np.asarray([str(v) for v in y_pred], dtype=object)
    if len(y_true_arr) != len(y_pred_arr):
        msg = f"Length mismatch: {len(y_true_arr)} actual vs {len(y_pred_arr)} predicted labels"
        raise ValueError(msg)

    label_list = [str(v) for v in labels]
    n_instances = len(y_true_arr)
    n_correct = int(np.sum(y_true_arr == y_pred_arr))

    if n_instances == 0:
        log.warning("No labeled rows to evaluate", model=model_name)
        matrix = np.zeros((len(label_list), len(label_list)), dtype=int)
        zeros = np.zeros(len(label_list))
        per_class = (zeros, zeros, zeros, zeros)
        weighted = (0.0, 0.0, 0.0)
    else:
        matrix = confusion_matrix(y_true_arr, y_pred_arr, labels=label_list)
        per_class = precision_recall_fscore_support(
            y_true_arr, y_pred_arr, labels=label_list, average=None, zero_division=0
        )
        p, r, f, _ = precision_recall_fscore_support(
            y_true_arr, y_pred_arr, labels=label_list, average="weighted", zero_division=0
        )
        weighted = (float(p), float(r), float(f))

    kappa = _kappa(y_true_arr, y_pred_arr, label_list)
    accuracy = 100.0 * n_correct / n_instances if n_instances else 0.0

    return EvaluationResult(
        model_name=model_name,
        accuracy=accuracy,
        kappa=kappa,
        precision=weighted[0],
        recall=weighted[1],
        f1=weighted[2],
        summary=format_summary(n_correct, n_instances, kappa, title=title),
        confusion_matrix=format_confusion_matrix(matrix, label_list),
        class_details=format_class_details(
            matrix,
            label_list,
            np.asarray(per_class[0], dtype=float),
            np.asarray(per_class[1], dtype=float),
            np.asarray(per_class[2], dtype=float),
            np.asarray(per_class[3], dtype=float),
        ),
        n_instances=n_instances,
        n_correct=n_correct,
    )
