"""
Dataset preparation:
- Drop identifier columns and cast nominal fields to categoricals
- Missing-value diagnostics (fail fast unless a column is allowed to be sparse)
- Chi-square feature selection for categorical fields
- Descriptive tables used by the EDA report
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Tuple

import pandas as pd
from scipy.stats import chi2_contingency

from .data_io import FeatureSchema
from .errors import DataIntegrityError

logger = logging.getLogger(__name__)


def missing_value_report(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-column dtype, missing count, missing share and number of distinct values.
    """
    n = len(df)
    report = pd.DataFrame(
        {
            "dtype": df.dtypes.astype(str),
            "n_missing": df.isna().sum(),
            "pct_missing": df.isna().sum() / n if n else 0.0,
            "n_unique": df.nunique(dropna=True),
        }
    )
    report.index.name = "column"
    return report


def prepare_dataset(
    df: pd.DataFrame,
    schema: FeatureSchema,
    allow_missing: Iterable[str] = (),
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Clean a raw frame into the modelling dataset.

    Returns (clean_df, diagnostics). The input frame is left untouched.
    Raises DataIntegrityError naming the offending columns when a schema column
    is absent, holds non-numeric values where numbers are expected, has
    missing values not listed in `allow_missing`, or the label is not 0/1.
    """
    expected = schema.feature_cols + [schema.target]
    absent = [c for c in expected if c not in df.columns]
    if absent:
        raise DataIntegrityError(f"Dataset is missing columns: {absent}")

    extra = [c for c in df.columns if c not in expected and c not in schema.drop_cols]
    if extra:
        logger.info("Ignoring columns outside the schema: %s", extra)

    # Keep schema columns only; identifiers and extras fall away here
    out = df.loc[:, expected].copy()

    for col in schema.numeric_cols:
        if pd.api.types.is_numeric_dtype(out[col]):
            continue
        coerced = pd.to_numeric(out[col], errors="coerce")
        bad = coerced.isna() & out[col].notna()
        if bad.any():
            raise DataIntegrityError(
                f"Column {col!r} has {int(bad.sum())} non-numeric values "
                f"(first: {out.loc[bad, col].iloc[0]!r})"
            )
        out[col] = coerced

    diagnostics = missing_value_report(out)

    allowed = set(allow_missing) - {schema.target}
    offending = [
        c for c in expected
        if diagnostics.at[c, "n_missing"] > 0 and c not in allowed
    ]
    if offending:
        counts = {c: int(diagnostics.at[c, "n_missing"]) for c in offending}
        raise DataIntegrityError(f"Missing values in columns: {counts}")

    labels = set(out[schema.target].unique().tolist())
    if not labels <= {0, 1}:
        raise DataIntegrityError(
            f"Label column {schema.target!r} must be binary 0/1, found {sorted(labels, key=str)}"
        )
    out[schema.target] = out[schema.target].astype(int)

    for col in schema.categorical_cols:
        out[col] = out[col].astype("category")

    logger.info(
        "Prepared dataset: %d rows, %d numeric + %d categorical features, churn rate %.3f",
        len(out), len(schema.numeric_cols), len(schema.categorical_cols), out[schema.target].mean(),
    )
    return out, diagnostics


def chi_square_selection(
    df: pd.DataFrame,
    categorical_cols: Iterable[str],
    target: str,
    significance: float = 0.05,
) -> pd.DataFrame:
    """
    Test each categorical feature for independence from the label.

    A feature is flagged as low-value when its p-value exceeds `significance`.
    Dropping flagged features is left to the caller (see drop_flagged_features).
    """
    rows = []
    for col in categorical_cols:
        contingency = pd.crosstab(df[col], df[target])
        # Unobserved category levels would put zeros in the expected table
        contingency = contingency.loc[contingency.sum(axis=1) > 0]
        chi2, p, dof, _ = chi2_contingency(contingency)
        rows.append(
            {
                "feature": col,
                "chi2": float(chi2),
                "dof": int(dof),
                "p_value": float(p),
                "flagged": bool(p > significance),
            }
        )

    result = pd.DataFrame(rows, columns=["feature", "chi2", "dof", "p_value", "flagged"])
    result = result.sort_values("p_value", kind="mergesort").reset_index(drop=True)

    flagged = result.loc[result["flagged"], "feature"].tolist()
    if flagged:
        logger.info("Chi-square: %s not significant at %.3f", flagged, significance)
    return result


def drop_flagged_features(
    df: pd.DataFrame,
    selection: pd.DataFrame,
    schema: FeatureSchema,
) -> Tuple[pd.DataFrame, FeatureSchema]:
    """
    Drop the features chi_square_selection flagged. Returns (frame, reduced schema).
    """
    flagged = selection.loc[selection["flagged"], "feature"].tolist()
    return df.drop(columns=[c for c in flagged if c in df.columns]), schema.without(flagged)


def describe_dataset(df: pd.DataFrame, schema: FeatureSchema) -> Dict[str, pd.DataFrame]:
    """
    Descriptive tables for the EDA report:
    - numeric: summary statistics per numeric column, split by label
    - churn_rate: churn rate per level of each categorical column
    """
    numeric = df.groupby(schema.target)[schema.numeric_cols].describe().T

    parts = []
    for col in schema.categorical_cols:
        grouped = df.groupby(col, observed=True)[schema.target].agg(["count", "mean"])
        grouped = grouped.rename(columns={"count": "n", "mean": "churn_rate"})
        grouped.index = pd.MultiIndex.from_product([[col], grouped.index.astype(str)], names=["feature", "level"])
        parts.append(grouped)

    if parts:
        churn_rate = pd.concat(parts)
    else:
        churn_rate = pd.DataFrame(columns=["n", "churn_rate"])

    return {
        "numeric": numeric,
        "churn_rate": churn_rate,
        "class_balance": df[schema.target].value_counts(normalize=True).sort_index().rename("share").to_frame(),
        "skew": df[schema.numeric_cols].skew().rename("skew").to_frame() if schema.numeric_cols else pd.DataFrame(),
    }
