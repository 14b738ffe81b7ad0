"""
Comparison of evaluated classifiers: a ranked metrics table plus the ROC
points of every model for plotting. Nothing here recomputes a metric.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

import numpy as np
import pandas as pd

from .config import METRIC_NAMES
from .errors import ConfigurationError
from .evaluation import EvaluationResult


class ComparisonReport:

    def __init__(self, results: Iterable[EvaluationResult], primary_metric: str = "auc"):
        if primary_metric not in METRIC_NAMES:
            raise ConfigurationError(f"Unknown primary metric {primary_metric!r} (expected one of {METRIC_NAMES})")
        self.results: List[EvaluationResult] = list(results)
        names = [r.name for r in self.results]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate classifier names in report: {duplicates}")
        self.primary_metric = primary_metric

    def _ranked(self) -> List[EvaluationResult]:
        def key(pair):
            pos, result = pair
            value = result.metrics[self.primary_metric]
            # NaN last, higher first, insertion order among ties
            return (np.isnan(value), -value if not np.isnan(value) else 0.0, pos)

        return [r for _, r in sorted(enumerate(self.results), key=key)]

    def ranking(self) -> List[str]:
        return [r.name for r in self._ranked()]

    def best(self) -> EvaluationResult:
        if not self.results:
            raise ValueError("No results to rank")
        return self._ranked()[0]

    def table(self) -> pd.DataFrame:
        """
        One row per classifier, ordered by the primary metric (descending).
        """
        rows = [r.as_row() for r in self._ranked()]
        table = pd.DataFrame(rows, columns=["model"] + list(METRIC_NAMES))
        table.insert(0, "rank", range(1, len(table) + 1))
        return table.set_index("model")

    def roc_curves(self) -> Dict[str, Tuple[Tuple[float, ...], Tuple[float, ...]]]:
        return {r.name: (r.fpr, r.tpr) for r in self.results}

    def to_dict(self) -> Dict:
        """
        JSON-ready summary; NaN becomes None.
        """
        def clean(v):
            return None if isinstance(v, float) and np.isnan(v) else v

        return {
            "primary_metric": self.primary_metric,
            "ranking": self.ranking(),
            "models": {
                r.name: {
                    "metrics": {k: clean(v) for k, v in r.metrics.items()},
                    "threshold": r.threshold,
                    "confusion_matrix": [list(row) for row in r.confusion],
                    "undefined_metrics": list(r.undefined_metrics),
                }
                for r in self.results
            },
        }
