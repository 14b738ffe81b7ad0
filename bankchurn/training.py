"""
Cross-validated grid search over one classifier adapter.

Every (configuration, fold) pair is an independent unit: fit on k-1 folds,
score the held-out fold. Units run through joblib and are reduced per
configuration afterwards, so completion order never affects the result.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.model_selection import ParameterGrid, StratifiedKFold

from .config import METRIC_NAMES
from .errors import ConfigurationError, ConvergenceFailure, SearchCancelled
from .evaluation import compute_metrics, evaluate
from .modeling import ClassifierAdapter
from .reporting import ComparisonReport

logger = logging.getLogger(__name__)

ParamGrid = Union[Mapping[str, Sequence[Any]], Sequence[Mapping[str, Sequence[Any]]]]


@dataclass(frozen=True)
class ConfigScore:
    """Cross-validated score of one configuration."""
    index: int
    config: Dict[str, Any]
    fold_scores: Tuple[float, ...]
    mean_score: float
    status: str = "ok"
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def rank_key(self) -> float:
        # Failed configs and undefined means sort below every real score
        if self.failed or np.isnan(self.mean_score):
            return float("-inf")
        return self.mean_score


@dataclass(frozen=True)
class SearchResult:
    adapter_name: str
    selection_metric: str
    best_config: Dict[str, Any]
    best_score: float
    scores: Tuple[ConfigScore, ...]
    model: Any

    def table(self) -> pd.DataFrame:
        rows = []
        for s in self.scores:
            rows.append(
                {
                    "config": s.config,
                    f"mean_{self.selection_metric}": s.mean_score,
                    "std": float(np.std(s.fold_scores)) if s.fold_scores else float("nan"),
                    "status": s.status,
                }
            )
        return pd.DataFrame(rows)


def _fit_and_score(
    adapter: ClassifierAdapter,
    train: pd.DataFrame,
    config: Dict[str, Any],
    fit_idx: np.ndarray,
    holdout_idx: np.ndarray,
    metric: str,
    threshold: float,
) -> Tuple[Optional[float], Optional[str]]:
    """
    One unit of work. Returns (score, None) or (None, error message).
    """
    target = adapter.schema.target
    try:
        model = adapter.fit(train.iloc[fit_idx], config)
    except ConvergenceFailure as exc:
        return None, str(exc)

    holdout = train.iloc[holdout_idx]
    y_prob = adapter.predict_probability(model, holdout.drop(columns=[target]))
    metrics = compute_metrics(holdout[target].to_numpy(), y_prob, threshold=threshold, warn=False)
    return float(metrics[metric]), None


def _reduce(index: int, config: Dict[str, Any], outcomes: List[Tuple[Optional[float], Optional[str]]]) -> ConfigScore:
    errors = [err for _, err in outcomes if err is not None]
    if errors:
        return ConfigScore(
            index=index,
            config=config,
            fold_scores=tuple(s for s, _ in outcomes if s is not None),
            mean_score=float("-inf"),
            status="failed",
            error=errors[0],
        )
    fold_scores = tuple(s for s, _ in outcomes)
    return ConfigScore(index=index, config=config, fold_scores=fold_scores, mean_score=float(np.mean(fold_scores)))


def select_best(scores: Sequence[ConfigScore]) -> ConfigScore:
    """
    Highest mean score wins; among ties the earliest configuration in grid
    order. Raises ConvergenceFailure when every configuration failed.
    """
    best = None
    for s in sorted(scores, key=lambda s: s.index):
        if s.failed:
            continue
        if best is None or s.rank_key > best.rank_key:
            best = s
    if best is None:
        raise ConvergenceFailure(f"All {len(scores)} configurations failed to fit")
    return best


class GridSearchTrainer:
    """
    k-fold grid search for one classifier adapter.
    """

    def __init__(
        self,
        adapter: ClassifierAdapter,
        param_grid: ParamGrid,
        n_folds: int = 10,
        selection_metric: str = "kappa",
        threshold: float = 0.5,
        random_state: int = 42,
        n_jobs: int = 1,
    ):
        if selection_metric not in METRIC_NAMES:
            raise ConfigurationError(
                f"Unknown selection metric {selection_metric!r} (expected one of {METRIC_NAMES})"
            )
        if n_folds < 2:
            raise ConfigurationError(f"n_folds must be >= 2, got {n_folds}")
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"threshold must be in [0, 1], got {threshold}")

        self.adapter = adapter
        self.param_grid = param_grid
        self.n_folds = n_folds
        self.selection_metric = selection_metric
        self.threshold = threshold
        self.random_state = random_state
        self.n_jobs = n_jobs

    def configurations(self) -> List[Dict[str, Any]]:
        """
        Enumerate the grid in canonical order, validating every key up front.
        """
        try:
            configs = [dict(c) for c in ParameterGrid(self.param_grid)]
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"{self.adapter.name}: invalid grid: {exc}") from exc
        if not configs:
            raise ConfigurationError(f"{self.adapter.name}: empty grid")
        for config in configs:
            self.adapter.validate(config)
        return configs

    def folds(self, train: pd.DataFrame) -> List[Tuple[np.ndarray, np.ndarray]]:
        target = self.adapter.schema.target
        skf = StratifiedKFold(n_splits=self.n_folds, shuffle=True, random_state=self.random_state)
        try:
            return list(skf.split(np.zeros(len(train)), train[target].to_numpy()))
        except ValueError as exc:
            raise ConfigurationError(f"Cannot build {self.n_folds} folds: {exc}") from exc

    def fit(self, train: pd.DataFrame, cancel: Optional[threading.Event] = None) -> SearchResult:
        """
        Search the grid and refit the winning configuration on all of `train`.

        `cancel` is checked between units; once set, unfinished configurations
        are dropped and SearchCancelled carries the fully scored ones.
        """
        configs = self.configurations()
        folds = self.folds(train)
        name = self.adapter.name

        if cancel is not None and cancel.is_set():
            raise SearchCancelled(f"{name}: grid search cancelled before start")

        logger.info(
            "%s: %d configurations x %d folds (select by %s, n_jobs=%s)",
            name, len(configs), len(folds), self.selection_metric, self.n_jobs,
        )

        units = [(ci, fi) for ci in range(len(configs)) for fi in range(len(folds))]
        outputs = Parallel(n_jobs=self.n_jobs, return_as="generator")(
            delayed(_fit_and_score)(
                self.adapter,
                train,
                configs[ci],
                folds[fi][0],
                folds[fi][1],
                self.selection_metric,
                self.threshold,
            )
            for ci, fi in units
        )

        collected: Dict[int, Dict[int, Tuple[Optional[float], Optional[str]]]] = {}
        cancelled = False
        for (ci, fi), outcome in zip(units, outputs):
            collected.setdefault(ci, {})[fi] = outcome
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
        if cancelled:
            outputs.close()

        scores = []
        for ci, by_fold in sorted(collected.items()):
            # Partially scored configurations are never aggregated
            if len(by_fold) < len(folds):
                continue
            outcomes = [by_fold[fi] for fi in range(len(folds))]
            score = _reduce(ci, configs[ci], outcomes)
            if score.failed:
                logger.warning("%s: config %s failed: %s", name, score.config, score.error)
            else:
                logger.debug("%s: config %s -> %s=%.4f", name, score.config, self.selection_metric, score.mean_score)
            scores.append(score)

        if cancelled:
            raise SearchCancelled(
                f"{name}: grid search cancelled after {len(scores)} of {len(configs)} configurations",
                completed=scores,
            )

        best = select_best(scores)
        logger.info("%s: best %s=%.4f with %s", name, self.selection_metric, best.mean_score, best.config)

        model = self.adapter.fit(train, best.config)
        return SearchResult(
            adapter_name=name,
            selection_metric=self.selection_metric,
            best_config=dict(best.config),
            best_score=best.mean_score,
            scores=tuple(scores),
            model=model,
        )


def compare_classifiers(
    adapters: Mapping[str, ClassifierAdapter],
    param_grids: Mapping[str, ParamGrid],
    train: pd.DataFrame,
    test: pd.DataFrame,
    n_folds: int = 10,
    selection_metric: str = "kappa",
    threshold: float = 0.5,
    primary_metric: str = "auc",
    random_state: int = 42,
    n_jobs: int = 1,
) -> Tuple[Dict[str, SearchResult], ComparisonReport]:
    """
    Grid-search every adapter on `train`, evaluate each winner on `test`, and
    rank them. Adapters without a grid entry are fitted with their defaults.
    """
    unknown = sorted(set(param_grids) - set(adapters))
    if unknown:
        raise ConfigurationError(f"Grids given for unknown classifiers: {unknown}")

    searches: Dict[str, SearchResult] = {}
    results = []
    for name, adapter in adapters.items():
        trainer = GridSearchTrainer(
            adapter,
            param_grids.get(name, {}),
            n_folds=n_folds,
            selection_metric=selection_metric,
            threshold=threshold,
            random_state=random_state,
            n_jobs=n_jobs,
        )
        search = trainer.fit(train)
        searches[name] = search
        results.append(evaluate(search.model, test, adapter.schema.target, threshold=threshold, name=name))

    return searches, ComparisonReport(results, primary_metric=primary_metric)
