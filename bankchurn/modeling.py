"""
Modeling utilities:
- Build preprocessing + model pipelines
- A uniform adapter around each candidate classifier
- Default hyperparameter grids
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import GradientBoostingClassifier, RandomForestClassifier
from sklearn.impute import SimpleImputer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.tree import DecisionTreeClassifier
# Private module; its location is stable across the pinned scikit-learn range
from sklearn.utils._param_validation import InvalidParameterError

from .config import DEFAULT_PARAM_GRIDS
from .data_io import FeatureSchema, split_features_target
from .errors import ConfigurationError, ConvergenceFailure

logger = logging.getLogger(__name__)


def build_preprocessor(schema: FeatureSchema) -> ColumnTransformer:
    """
    Create a ColumnTransformer that:
    - imputes missing values (only reachable for columns allowed to be sparse)
    - one-hot encodes categoricals
    - scales numerics (helpful for logistic regression)

    Keeping preprocessing inside the pipeline prevents leakage across folds.
    """
    numeric_pipe = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="median")),
            ("scaler", StandardScaler()),
        ]
    )

    categorical_pipe = Pipeline(
        steps=[
            ("imputer", SimpleImputer(strategy="most_frequent")),
            ("onehot", OneHotEncoder(handle_unknown="ignore")),
        ]
    )

    transformers = []
    if schema.numeric_cols:
        transformers.append(("num", numeric_pipe, list(schema.numeric_cols)))
    if schema.categorical_cols:
        transformers.append(("cat", categorical_pipe, list(schema.categorical_cols)))

    return ColumnTransformer(
        transformers=transformers,
        remainder="drop",  # identifiers and the label never reach the model
    )


class ClassifierAdapter:
    """
    Uniform fit / predict surface over one kind of classifier.

    The hyperparameter schema is the estimator's own parameter set; a config
    may only name keys from it. `random_state` is filled in from the adapter
    when the estimator takes one and the config leaves it out.
    """

    def __init__(
        self,
        name: str,
        estimator_factory: Callable[..., BaseEstimator],
        schema: FeatureSchema,
        base_params: Optional[Dict[str, Any]] = None,
        random_state: Optional[int] = None,
    ):
        self.name = name
        self.estimator_factory = estimator_factory
        self.schema = schema
        self.base_params = dict(base_params or {})
        self.random_state = random_state

    def __repr__(self) -> str:
        return f"ClassifierAdapter({self.name!r})"

    @property
    def hyperparameters(self) -> List[str]:
        return sorted(self.estimator_factory().get_params(deep=False))

    def validate(self, config: Mapping[str, Any]) -> None:
        known = set(self.hyperparameters)
        unknown = sorted(k for k in config if k not in known)
        if unknown:
            raise ConfigurationError(f"{self.name}: unknown hyperparameters {unknown}")

    def build(self, config: Mapping[str, Any]) -> Pipeline:
        """
        Build an unfitted (preprocessor -> model) pipeline for one configuration.
        """
        self.validate(config)
        params = dict(self.base_params)
        if "random_state" in self.hyperparameters and self.random_state is not None:
            params["random_state"] = self.random_state
        params.update(config)
        model = self.estimator_factory(**params)
        return Pipeline(steps=[("preprocess", build_preprocessor(self.schema)), ("model", model)])

    def fit(self, train: pd.DataFrame, config: Mapping[str, Any]) -> Pipeline:
        """
        Fit one configuration on a frame that includes the label column.
        """
        pipe = self.build(config)
        X, y = split_features_target(train, self.schema.target)
        try:
            pipe.fit(X, y)
        except InvalidParameterError as exc:
            raise ConfigurationError(f"{self.name}: invalid hyperparameter value in {dict(config)}: {exc}") from exc
        except (ValueError, FloatingPointError, np.linalg.LinAlgError) as exc:
            raise ConvergenceFailure(f"{self.name} failed to fit with {dict(config)}: {exc}") from exc
        return pipe

    def predict_probability(self, model: Pipeline, records: pd.DataFrame) -> np.ndarray:
        return get_positive_class_proba(model, records)

    def predict_label(self, model: Pipeline, records: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        return (self.predict_probability(model, records) >= threshold).astype(int)


def get_positive_class_proba(model: BaseEstimator, X) -> np.ndarray:
    """
    Return predicted probabilities for the positive (churn) class.
    """
    if hasattr(model, "predict_proba"):
        return model.predict_proba(X)[:, 1]
    raise TypeError("Model does not support probability prediction.")


def make_adapters(schema: FeatureSchema, random_state: int = 42) -> Dict[str, ClassifierAdapter]:
    """
    The four candidate classifiers compared by the report:
    - Logistic Regression: interpretable baseline
    - Decision Tree: single readable tree
    - Random Forest: non-linear + feature importance
    - Gradient Boosting: strong tabular baseline
    """
    return {
        "logreg": ClassifierAdapter(
            "logreg", LogisticRegression, schema,
            base_params={"max_iter": 5000, "solver": "lbfgs"},
            random_state=random_state,
        ),
        "decision_tree": ClassifierAdapter(
            "decision_tree", DecisionTreeClassifier, schema,
            random_state=random_state,
        ),
        "random_forest": ClassifierAdapter(
            "random_forest", RandomForestClassifier, schema,
            base_params={"n_jobs": 1},
            random_state=random_state,
        ),
        "gradient_boosting": ClassifierAdapter(
            "gradient_boosting", GradientBoostingClassifier, schema,
            random_state=random_state,
        ),
    }


def default_param_grids() -> Dict[str, Dict[str, List]]:
    return {name: {k: list(v) for k, v in grid.items()} for name, grid in DEFAULT_PARAM_GRIDS.items()}
