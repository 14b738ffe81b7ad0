"""
Data loading and basic validation utilities.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Iterable, List, Tuple

import pandas as pd

from .config import TARGET_COL, DROP_COLS, CATEGORICAL_COLS, NUMERIC_COLS
from .errors import DataIntegrityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureSchema:
    """
    A lightweight schema to record what features the pipeline expects.
    Used again when scoring new data.
    """
    target: str
    drop_cols: List[str]
    categorical_cols: List[str]
    numeric_cols: List[str]

    @property
    def feature_cols(self) -> List[str]:
        return list(self.numeric_cols) + list(self.categorical_cols)

    def without(self, cols: Iterable[str]) -> "FeatureSchema":
        """
        Return a copy of the schema with the given feature columns removed.
        """
        cols = set(cols)
        return replace(
            self,
            categorical_cols=[c for c in self.categorical_cols if c not in cols],
            numeric_cols=[c for c in self.numeric_cols if c not in cols],
        )


def get_feature_schema() -> FeatureSchema:
    """
    Return the expected schema for the bank churn dataset.
    """
    return FeatureSchema(
        target=TARGET_COL,
        drop_cols=list(DROP_COLS),
        categorical_cols=list(CATEGORICAL_COLS),
        numeric_cols=list(NUMERIC_COLS),
    )


def load_churn_csv(csv_path: Path, schema: FeatureSchema = None) -> pd.DataFrame:
    """
    Load the churn CSV into a DataFrame and check the header.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    schema = schema or get_feature_schema()
    df = pd.read_csv(csv_path)

    # Identifier columns are optional; they get dropped anyway
    required = set([schema.target] + schema.feature_cols)
    missing = sorted(list(required - set(df.columns)))
    if missing:
        raise DataIntegrityError(
            "CSV is missing required columns.\n"
            f"Missing: {missing}\n"
            f"Found: {sorted(df.columns.tolist())}"
        )

    logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], csv_path)
    return df


def split_features_target(df: pd.DataFrame, target: str = TARGET_COL) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Split dataframe into X (features) and y (target).
    """
    y = df[target].astype(int)
    X = df.drop(columns=[target])
    return X, y


def save_schema(schema: FeatureSchema, out_path: Path) -> None:
    """
    Save schema as JSON.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(asdict(schema), f, indent=2)


def load_schema(path: Path) -> FeatureSchema:
    with path.open("r", encoding="utf-8") as f:
        return FeatureSchema(**json.load(f))
