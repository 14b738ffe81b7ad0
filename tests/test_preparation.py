import numpy as np
import pandas as pd
import pytest

from bankchurn.errors import DataIntegrityError
from bankchurn.preparation import (
    chi_square_selection,
    describe_dataset,
    drop_flagged_features,
    prepare_dataset,
)


def test_prepare_drops_identifiers_and_casts_categoricals(raw_df, schema):
    df, diagnostics = prepare_dataset(raw_df, schema)

    for col in schema.drop_cols:
        assert col not in df.columns
    for col in schema.categorical_cols:
        assert isinstance(df[col].dtype, pd.CategoricalDtype)
    assert df[schema.target].dtype == int
    assert len(df) == len(raw_df)
    assert set(diagnostics.index) == set(schema.feature_cols + [schema.target])
    assert diagnostics["n_missing"].sum() == 0


def test_prepare_does_not_mutate_input(raw_df, schema):
    before = raw_df.copy()
    prepare_dataset(raw_df, schema)
    pd.testing.assert_frame_equal(raw_df, before)


def test_missing_values_fail_fast_naming_the_column(raw_df, schema):
    raw_df.loc[[3, 7], "Balance"] = np.nan
    with pytest.raises(DataIntegrityError, match="Balance"):
        prepare_dataset(raw_df, schema)


def test_allowed_missing_column_passes(raw_df, schema):
    raw_df.loc[[3, 7], "Balance"] = np.nan
    df, diagnostics = prepare_dataset(raw_df, schema, allow_missing=["Balance"])
    assert diagnostics.at["Balance", "n_missing"] == 2
    assert df["Balance"].isna().sum() == 2


def test_missing_label_is_never_allowed(raw_df, schema):
    raw_df[schema.target] = raw_df[schema.target].astype(float)
    raw_df.loc[0, schema.target] = np.nan
    with pytest.raises(DataIntegrityError, match=schema.target):
        prepare_dataset(raw_df, schema, allow_missing=[schema.target])


def test_non_numeric_values_are_rejected(raw_df, schema):
    raw_df["Age"] = raw_df["Age"].astype(object)
    raw_df.loc[5, "Age"] = "forty"
    with pytest.raises(DataIntegrityError, match="Age"):
        prepare_dataset(raw_df, schema)


def test_non_binary_label_is_rejected(raw_df, schema):
    raw_df.loc[0, schema.target] = 2
    with pytest.raises(DataIntegrityError, match="binary"):
        prepare_dataset(raw_df, schema)


def test_absent_column_is_reported(raw_df, schema):
    with pytest.raises(DataIntegrityError, match="Geography"):
        prepare_dataset(raw_df.drop(columns=["Geography"]), schema)


def test_chi_square_flags_independent_feature():
    # Noise is split exactly evenly within each class, so chi2 = 0
    df = pd.DataFrame(
        {
            "Signal": ["a"] * 80 + ["b"] * 20 + ["a"] * 5 + ["b"] * 95,
            "Noise": (["x", "y"] * 50) + (["x", "y"] * 50),
            "Exited": [0] * 100 + [1] * 100,
        }
    )
    result = chi_square_selection(df, ["Signal", "Noise"], "Exited", significance=0.05)

    assert list(result["feature"]) == ["Signal", "Noise"]
    by_feature = result.set_index("feature")
    assert not by_feature.at["Signal", "flagged"]
    assert by_feature.at["Noise", "flagged"]
    assert by_feature.at["Noise", "p_value"] == pytest.approx(1.0)
    assert by_feature.at["Signal", "dof"] == 1


def test_chi_square_threshold_is_configurable(churn_df, schema):
    strict = chi_square_selection(churn_df, schema.categorical_cols, schema.target, significance=1e-12)
    loose = chi_square_selection(churn_df, schema.categorical_cols, schema.target, significance=0.999999)
    assert strict["flagged"].sum() >= loose["flagged"].sum()
    assert not loose.set_index("feature").at["Geography", "flagged"]


def test_drop_flagged_features_updates_schema(churn_df, schema):
    selection = pd.DataFrame(
        {"feature": ["Geography", "Gender"], "chi2": [50.0, 0.1], "dof": [2, 1],
         "p_value": [1e-9, 0.7], "flagged": [False, True]}
    )
    df, reduced = drop_flagged_features(churn_df, selection, schema)

    assert "Gender" not in df.columns
    assert "Gender" not in reduced.categorical_cols
    assert "Geography" in reduced.categorical_cols
    assert reduced.numeric_cols == schema.numeric_cols


def test_describe_dataset_tables(churn_df, schema):
    tables = describe_dataset(churn_df, schema)

    rates = tables["churn_rate"]
    assert rates.loc[("Geography", "Germany"), "churn_rate"] > rates.loc[("Geography", "France"), "churn_rate"]
    assert tables["class_balance"].loc[1, "share"] == pytest.approx(0.2)
    assert set(tables["skew"].index) == set(schema.numeric_cols)
