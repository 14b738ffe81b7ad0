"""
Evaluation utilities:
- Confusion-matrix metrics at a decision threshold (accuracy, precision,
  recall, F-measure, Cohen's Kappa)
- ROC curve and its area
- An immutable per-classifier result consumed by the comparison report
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import auc, confusion_matrix, roc_curve

from .config import METRIC_NAMES
from .data_io import split_features_target
from .errors import ConfigurationError, MetricUndefined
from .modeling import get_positive_class_proba

logger = logging.getLogger(__name__)

NAN = float("nan")


@dataclass(frozen=True)
class EvaluationResult:
    """
    Metrics of one fitted classifier on a held-out frame.

    Undefined metrics hold NaN and are listed in `undefined_metrics`.
    """
    name: str
    metrics: Mapping[str, float]
    threshold: float
    fpr: Tuple[float, ...] = ()
    tpr: Tuple[float, ...] = ()
    confusion: Tuple[Tuple[int, int], Tuple[int, int]] = ((0, 0), (0, 0))
    undefined_metrics: Tuple[str, ...] = field(default=())

    def __post_init__(self):
        # Freeze the mapping so a result can be shared without copies
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def __getitem__(self, metric: str) -> float:
        return self.metrics[metric]

    def as_row(self) -> Dict[str, float]:
        return {"model": self.name, **{k: self.metrics[k] for k in METRIC_NAMES}}


def roc_points(y_true: np.ndarray, y_prob: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    ROC curve over every distinct predicted probability. Empty when the
    labels hold a single class (false/true positive rates are undefined).
    """
    y_true = np.asarray(y_true).astype(int)
    if len(np.unique(y_true)) < 2:
        return np.array([]), np.array([])
    fpr, tpr, _ = roc_curve(y_true, y_prob, drop_intermediate=False)
    return fpr, tpr


def _ratio(num: int, den: int) -> float:
    return num / den if den else NAN


def compute_metrics(
    y_true,
    y_prob,
    threshold: float = 0.5,
    warn: bool = True,
) -> Dict[str, float]:
    """
    Compute threshold metrics from the 2x2 confusion matrix, plus ROC-AUC.

    A probability >= threshold is a positive (churn) prediction.
    Metrics whose denominator is zero come back as NaN.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ConfigurationError(f"threshold must be in [0, 1], got {threshold}")
    y_true = np.asarray(y_true).astype(int)
    y_prob = np.asarray(y_prob, dtype=float)
    if len(y_true) == 0:
        raise ValueError("Cannot compute metrics on an empty set")
    if len(y_true) != len(y_prob):
        raise ValueError(f"Length mismatch: {len(y_true)} labels vs {len(y_prob)} probabilities")

    y_pred = (y_prob >= threshold).astype(int)
    tn, fp, fn, tp = (int(v) for v in confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel())
    n = tn + fp + fn + tp

    precision = _ratio(tp, tp + fp)
    recall = _ratio(tp, tp + fn)
    if np.isnan(precision) or np.isnan(recall) or precision + recall == 0:
        f_measure = NAN
    else:
        f_measure = 2 * precision * recall / (precision + recall)

    # Kappa in integer arithmetic: observed and chance agreement scaled by n^2
    observed = (tp + tn) * n
    chance = (tp + fp) * (tp + fn) + (tn + fn) * (tn + fp)
    kappa = _ratio(observed - chance, n * n - chance)

    fpr, tpr = roc_points(y_true, y_prob)
    roc_auc = float(auc(fpr, tpr)) if len(fpr) else NAN

    metrics = {
        "accuracy": (tp + tn) / n,
        "precision": precision,
        "recall": recall,
        "f_measure": f_measure,
        "kappa": kappa,
        "auc": roc_auc,
    }

    undefined = [k for k, v in metrics.items() if np.isnan(v)]
    if undefined and warn:
        warnings.warn(f"Undefined metrics reported as NaN: {undefined}", MetricUndefined, stacklevel=2)
    return metrics


def evaluate(
    model,
    test: pd.DataFrame,
    target: str,
    threshold: float = 0.5,
    name: str = "model",
) -> EvaluationResult:
    """
    Score a fitted model on the held-out frame. Neither argument is modified.
    """
    X, y = split_features_target(test, target)
    y_true = y.to_numpy()
    y_prob = get_positive_class_proba(model, X)

    metrics = compute_metrics(y_true, y_prob, threshold=threshold)
    fpr, tpr = roc_points(y_true, y_prob)
    cm = confusion_matrix(y_true, (y_prob >= threshold).astype(int), labels=[0, 1])

    result = EvaluationResult(
        name=name,
        metrics=metrics,
        threshold=float(threshold),
        fpr=tuple(float(v) for v in fpr),
        tpr=tuple(float(v) for v in tpr),
        confusion=tuple(tuple(int(v) for v in row) for row in cm),
        undefined_metrics=tuple(k for k, v in metrics.items() if np.isnan(v)),
    )
    logger.info(
        "%s: accuracy=%.4f f_measure=%.4f kappa=%.4f auc=%.4f",
        name, metrics["accuracy"], metrics["f_measure"], metrics["kappa"], metrics["auc"],
    )
    return result
