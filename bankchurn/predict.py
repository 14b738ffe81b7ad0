"""
Model persistence and scoring.

- save/load the selected model (joblib) and JSON artefacts
- score one customer record (used by the web endpoint)
- batch-score a CSV (used by scripts/score.py)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd
from joblib import dump, load

from .data_io import FeatureSchema
from .errors import DataIntegrityError
from .modeling import get_positive_class_proba

logger = logging.getLogger(__name__)


def save_json(obj: Dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, default=str)


def save_model(model, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    dump(model, path)
    logger.info("Saved model -> %s", path)


def load_model(path: Path):
    if not path.exists():
        raise FileNotFoundError(f"Model not found: {path}")
    return load(path)


def load_threshold(threshold_path: Path) -> float:
    if not threshold_path.exists():
        return 0.5
    with threshold_path.open("r", encoding="utf-8") as f:
        obj = json.load(f)
    return float(obj.get("threshold", 0.5))


def record_to_frame(record: Mapping[str, Any], schema: FeatureSchema) -> pd.DataFrame:
    """
    Turn one label-less record into a single-row frame in schema order.
    """
    missing = [c for c in schema.feature_cols if c not in record or record[c] is None]
    if missing:
        raise DataIntegrityError(f"Record is missing fields: {missing}")

    row = {}
    for col in schema.numeric_cols:
        try:
            row[col] = float(record[col])
        except (TypeError, ValueError) as exc:
            raise DataIntegrityError(f"Field {col!r} must be numeric, got {record[col]!r}") from exc
    for col in schema.categorical_cols:
        row[col] = record[col]

    return pd.DataFrame([row], columns=schema.feature_cols)


def score_record(model, record: Mapping[str, Any], schema: FeatureSchema) -> float:
    """
    Churn probability for one customer.
    """
    proba = get_positive_class_proba(model, record_to_frame(record, schema))
    return float(np.clip(proba[0], 0.0, 1.0))


def score_file(
    model_path: Path,
    input_csv: Path,
    output_csv: Path,
    threshold_path: Optional[Path] = None,
) -> None:
    """
    Score a CSV with the same schema as training data (label optional).

    Output columns:
    - churn_proba
    - churn_pred (based on the saved threshold)
    """
    if not input_csv.exists():
        raise FileNotFoundError(f"Input CSV not found: {input_csv}")

    model = load_model(model_path)
    df = pd.read_csv(input_csv)

    proba = get_positive_class_proba(model, df)
    threshold = load_threshold(threshold_path) if threshold_path else 0.5
    pred = (proba >= threshold).astype(int)

    out = df.copy()
    out["churn_proba"] = proba
    out["churn_pred"] = pred

    output_csv.parent.mkdir(parents=True, exist_ok=True)
    out.to_csv(output_csv, index=False)
    logger.info("Scored %d rows -> %s", len(out), output_csv)
