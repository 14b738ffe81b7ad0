import numpy as np
import pytest

from bankchurn.data_io import split_features_target
from bankchurn.errors import ConfigurationError, ConvergenceFailure
from bankchurn.modeling import ClassifierAdapter, default_param_grids, make_adapters
from bankchurn.training import GridSearchTrainer

from helpers import FlakyClassifier


def test_four_variants(schema):
    adapters = make_adapters(schema)
    assert list(adapters) == ["logreg", "decision_tree", "random_forest", "gradient_boosting"]
    assert set(default_param_grids()) == set(adapters)


@pytest.mark.parametrize("name", ["logreg", "decision_tree", "random_forest", "gradient_boosting"])
def test_default_grids_only_use_known_hyperparameters(schema, name):
    adapter = make_adapters(schema)[name]
    trainer = GridSearchTrainer(adapter, default_param_grids()[name], n_folds=3)
    assert trainer.configurations()


@pytest.mark.parametrize("name", ["logreg", "decision_tree", "random_forest", "gradient_boosting"])
def test_fit_and_predict(churn_df, schema, name):
    adapter = make_adapters(schema, random_state=0)[name]
    config = {"n_estimators": 20} if name in ("random_forest", "gradient_boosting") else {}
    model = adapter.fit(churn_df, config)

    X = churn_df.drop(columns=[schema.target]).head(50)
    proba = adapter.predict_probability(model, X)
    labels = adapter.predict_label(model, X, threshold=0.5)

    assert proba.shape == (50,)
    assert np.all((proba >= 0) & (proba <= 1))
    assert set(np.unique(labels)) <= {0, 1}
    np.testing.assert_array_equal(labels, (proba >= 0.5).astype(int))


def test_seed_is_threaded_into_randomized_models(churn_df, schema):
    X = churn_df.drop(columns=[schema.target])
    a = make_adapters(schema, random_state=3)["random_forest"]
    b = make_adapters(schema, random_state=3)["random_forest"]
    pa = a.predict_probability(a.fit(churn_df, {"n_estimators": 15}), X)
    pb = b.predict_probability(b.fit(churn_df, {"n_estimators": 15}), X)
    np.testing.assert_array_equal(pa, pb)


def test_unknown_hyperparameter_names_the_key(churn_df, schema):
    adapter = make_adapters(schema)["decision_tree"]
    with pytest.raises(ConfigurationError, match="learning_rate"):
        adapter.fit(churn_df, {"learning_rate": 0.1})


def test_invalid_hyperparameter_value(churn_df, schema):
    adapter = make_adapters(schema)["decision_tree"]
    with pytest.raises(ConfigurationError):
        adapter.fit(churn_df, {"max_depth": -3})


def test_fit_failure_becomes_convergence_failure(churn_df, schema):
    adapter = ClassifierAdapter("flaky", FlakyClassifier, schema)
    with pytest.raises(ConvergenceFailure, match="flaky"):
        adapter.fit(churn_df, {"fail": True})


def test_single_class_fit_is_a_convergence_failure(churn_df, schema):
    adapter = make_adapters(schema)["logreg"]
    stayers = churn_df[churn_df[schema.target] == 0]
    with pytest.raises(ConvergenceFailure):
        adapter.fit(stayers, {})


def test_model_without_probabilities_is_rejected(churn_df, schema):
    adapter = make_adapters(schema)["logreg"]
    X = churn_df.drop(columns=[schema.target])
    with pytest.raises(TypeError, match="probability"):
        adapter.predict_probability(object(), X)


def test_split_features_target_casts_label(churn_df, schema):
    frame = churn_df.assign(**{schema.target: churn_df[schema.target].astype(float)})
    X, y = split_features_target(frame, schema.target)
    assert schema.target not in X.columns
    assert list(X.columns) == [c for c in churn_df.columns if c != schema.target]
    assert y.dtype == int
    assert len(X) == len(y) == len(churn_df)
