"""
Partitioning and class balancing:
- Stratified, seeded train/test split
- SMOTE-style oversampling of the minority class plus random undersampling of
  the majority class, using the over/under percentages of the original report
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional

import pandas as pd
from imblearn.over_sampling import SMOTE, SMOTEN, SMOTENC
from imblearn.under_sampling import RandomUnderSampler
from sklearn.model_selection import train_test_split

from .errors import ConfigurationError, InsufficientMinoritySamples

logger = logging.getLogger(__name__)


class Partition(NamedTuple):
    train: pd.DataFrame
    test: pd.DataFrame


def stratified_split(
    df: pd.DataFrame,
    target: str,
    train_ratio: float = 0.7,
    random_state: int = 42,
) -> Partition:
    """
    Split into disjoint train/test frames with the label share preserved.
    Same frame + same seed always gives the same partition.
    """
    if not 0.0 < train_ratio < 1.0:
        raise ConfigurationError(f"train_ratio must be in (0, 1), got {train_ratio}")

    train, test = train_test_split(
        df,
        train_size=train_ratio,
        stratify=df[target],
        random_state=random_state,
    )
    logger.info(
        "Split %d rows -> train %d (churn %.3f) / test %d (churn %.3f)",
        len(df), len(train), train[target].mean(), len(test), test[target].mean(),
    )
    return Partition(train=train, test=test)


def _categorical_columns(X: pd.DataFrame) -> List[str]:
    return [
        c for c in X.columns
        if isinstance(X[c].dtype, pd.CategoricalDtype) or X[c].dtype == object
    ]


def _make_oversampler(X: pd.DataFrame, cat_cols: List[str], strategy, k_neighbors: int, random_state: int):
    if not cat_cols:
        return SMOTE(sampling_strategy=strategy, k_neighbors=k_neighbors, random_state=random_state)
    if len(cat_cols) == X.shape[1]:
        return SMOTEN(sampling_strategy=strategy, k_neighbors=k_neighbors, random_state=random_state)
    cat_idx = [X.columns.get_loc(c) for c in cat_cols]
    return SMOTENC(
        categorical_features=cat_idx,
        sampling_strategy=strategy,
        k_neighbors=k_neighbors,
        random_state=random_state,
    )


def balance_classes(
    train: pd.DataFrame,
    target: str,
    over_pct: int = 100,
    under_pct: int = 200,
    k_neighbors: int = 5,
    random_state: int = 42,
    categorical_cols: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Rebalance the training partition.

    With m minority rows, m * over_pct // 100 synthetic minority rows are
    interpolated between same-class nearest neighbours, and the majority class
    is randomly reduced to n_synthetic * under_pct // 100 rows (never more than
    it has). The minority stops at the kept majority size when that is smaller,
    so the output is never further from 1:1 than the input. 100/200 yields 1:1
    for any imbalanced input.

    Categorical columns (category/object dtype, or `categorical_cols`) take a
    neighbour's value instead of being interpolated.
    """
    if over_pct < 0 or under_pct < 0:
        raise ConfigurationError("over_pct and under_pct must be non-negative")

    y = train[target].astype(int)
    X = train.drop(columns=[target])

    counts = y.value_counts()
    if len(counts) < 2:
        raise ConfigurationError(f"Cannot balance a single-class frame (labels: {counts.index.tolist()})")
    if counts.iloc[0] == counts.iloc[1]:
        logger.info("Classes already balanced (%d each); nothing to do", counts.iloc[0])
        return train.reset_index(drop=True)

    minority = counts.idxmin()
    majority = counts.idxmax()
    n_min = int(counts[minority])
    n_maj = int(counts[majority])

    if n_min <= k_neighbors:
        raise InsufficientMinoritySamples(
            f"Minority class {minority} has {n_min} rows; need more than k_neighbors={k_neighbors}"
        )

    n_synth = n_min * over_pct // 100
    if n_synth == 0:
        raise ConfigurationError(f"over_pct={over_pct} synthesises no rows for {n_min} minority rows")
    n_keep = min(n_maj, n_synth * under_pct // 100)
    if n_keep == 0:
        raise ConfigurationError(f"under_pct={under_pct} would remove every majority row")

    # The minority never grows past the kept majority, so the output is never
    # further from parity than the input
    n_min_target = min(n_min + n_synth, max(n_keep, n_min))

    cat_cols = list(categorical_cols) if categorical_cols is not None else _categorical_columns(X)

    # Work on integer codes so the samplers only ever see numbers
    encoded = X.copy()
    categories = {}
    for col in cat_cols:
        as_cat = X[col].astype("category")
        categories[col] = as_cat.cat.categories
        encoded[col] = as_cat.cat.codes.astype("int64")

    if n_min_target > n_min:
        oversampler = _make_oversampler(
            encoded, cat_cols, {minority: n_min_target}, k_neighbors, random_state
        )
        X_over, y_over = oversampler.fit_resample(encoded, y)
    else:
        X_over, y_over = encoded, y

    undersampler = RandomUnderSampler(sampling_strategy={majority: n_keep}, random_state=random_state)
    X_bal, y_bal = undersampler.fit_resample(X_over, y_over)

    out = pd.DataFrame(X_bal, columns=X.columns).reset_index(drop=True)
    for col in cat_cols:
        out[col] = pd.Categorical.from_codes(out[col].astype("int64"), categories=categories[col])
    out[target] = pd.Series(y_bal).astype(int).to_numpy()

    logger.info(
        "Balanced train: %d/%d (maj/min) -> %d/%d using over=%d%% under=%d%%",
        n_maj, n_min, int((out[target] == majority).sum()), int((out[target] == minority).sum()),
        over_pct, under_pct,
    )
    return out[train.columns]
