from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List

from .errors import ConfigurationError

# Project root = folder containing this file's parent (bankchurn/) parent.
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Data
DATA_DIR = PROJECT_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"

# Outputs
MODELS_DIR = PROJECT_ROOT / "models"
REPORTS_DIR = PROJECT_ROOT / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"

# Dataset file name
DEFAULT_RAW_CSV = RAW_DATA_DIR / "Churn_Modelling.csv"

# Target label in this churn dataset (1 = customer closed the account)
TARGET_COL = "Exited"

# Columns that are identifiers / non-predictive text fields
DROP_COLS = ["RowNumber", "CustomerId", "Surname"]

# Nominal columns; flags and product count are categories, not magnitudes
CATEGORICAL_COLS = [
    "Geography",
    "Gender",
    "HasCrCard",
    "IsActiveMember",
    "NumOfProducts",
]

NUMERIC_COLS = [
    "CreditScore",
    "Age",
    "Tenure",
    "Balance",
    "EstimatedSalary",
]

# Metrics produced by the evaluator, usable for selection and ranking
METRIC_NAMES = ("accuracy", "precision", "recall", "f_measure", "kappa", "auc")

DEFAULT_PARAM_GRIDS: Dict[str, Dict[str, List]] = {
    "logreg": {
        "C": [0.1, 1.0, 10.0],
    },
    "decision_tree": {
        "max_depth": [3, 5, 8],
        "ccp_alpha": [0.0, 0.001, 0.01],
    },
    "random_forest": {
        "n_estimators": [100, 300],
        "max_features": ["sqrt", 0.5],
    },
    "gradient_boosting": {
        "n_estimators": [100, 200],
        "max_depth": [2, 3],
        "learning_rate": [0.05, 0.1],
    },
}


def _default_grids() -> Dict[str, Dict[str, List]]:
    return {name: {k: list(v) for k, v in grid.items()} for name, grid in DEFAULT_PARAM_GRIDS.items()}


@dataclass(frozen=True)
class RunConfig:
    """
    Every tunable of a training run, passed explicitly to each stage.
    """
    split_ratio: float = 0.7
    random_state: int = 42
    over_pct: int = 100
    under_pct: int = 200
    k_neighbors: int = 5
    n_folds: int = 10
    selection_metric: str = "kappa"
    threshold: float = 0.5
    significance: float = 0.05
    primary_metric: str = "auc"
    n_jobs: int = 1
    param_grids: Dict[str, Dict[str, List]] = field(default_factory=_default_grids)

    def __post_init__(self):
        if not 0.0 < self.split_ratio < 1.0:
            raise ConfigurationError(f"split_ratio must be in (0, 1), got {self.split_ratio}")
        if self.over_pct < 0 or self.under_pct < 0:
            raise ConfigurationError("over_pct and under_pct must be non-negative")
        if self.k_neighbors < 1:
            raise ConfigurationError(f"k_neighbors must be >= 1, got {self.k_neighbors}")
        if self.n_folds < 2:
            raise ConfigurationError(f"n_folds must be >= 2, got {self.n_folds}")
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"threshold must be in [0, 1], got {self.threshold}")
        if not 0.0 < self.significance < 1.0:
            raise ConfigurationError(f"significance must be in (0, 1), got {self.significance}")
        for key in ("selection_metric", "primary_metric"):
            value = getattr(self, key)
            if value not in METRIC_NAMES:
                raise ConfigurationError(f"{key}: unknown metric {value!r} (expected one of {METRIC_NAMES})")


def load_run_config(path: Path) -> RunConfig:
    """
    Read a JSON object and overlay it on the RunConfig defaults.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        obj = json.load(f)

    if not isinstance(obj, dict):
        raise ConfigurationError(f"Config must be a JSON object: {path}")

    known = {f.name for f in fields(RunConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {unknown}")

    # Grids given in the file replace the defaults per classifier, not wholesale
    if "param_grids" in obj:
        grids = _default_grids()
        grids.update(obj["param_grids"])
        obj["param_grids"] = grids

    return RunConfig(**obj)
