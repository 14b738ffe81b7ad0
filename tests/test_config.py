import json

import pytest

from bankchurn.config import DEFAULT_PARAM_GRIDS, RunConfig, load_run_config
from bankchurn.errors import ConfigurationError


def test_defaults():
    config = RunConfig()
    assert config.split_ratio == 0.7
    assert (config.over_pct, config.under_pct) == (100, 200)
    assert config.n_folds == 10
    assert config.threshold == 0.5
    assert config.primary_metric == "auc"
    assert set(config.param_grids) == set(DEFAULT_PARAM_GRIDS)


def test_load_overrides_and_merges_grids(tmp_path):
    path = tmp_path / "run.json"
    path.write_text(json.dumps({
        "random_state": 7,
        "selection_metric": "accuracy",
        "param_grids": {"logreg": {"C": [0.5]}},
    }))

    config = load_run_config(path)

    assert config.random_state == 7
    assert config.selection_metric == "accuracy"
    assert config.param_grids["logreg"] == {"C": [0.5]}
    assert config.param_grids["random_forest"] == DEFAULT_PARAM_GRIDS["random_forest"]


def test_unknown_key_is_named(tmp_path):
    path = tmp_path / "run.json"
    path.write_text(json.dumps({"n_fold": 5}))
    with pytest.raises(ConfigurationError, match="n_fold"):
        load_run_config(path)


@pytest.mark.parametrize(
    "overrides",
    [
        {"split_ratio": 1.2},
        {"n_folds": 1},
        {"selection_metric": "logloss"},
        {"threshold": -0.1},
        {"over_pct": -100},
        {"k_neighbors": 0},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ConfigurationError):
        RunConfig(**overrides)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_run_config(tmp_path / "absent.json")
