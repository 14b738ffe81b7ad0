import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from bankchurn.data_io import get_feature_schema  # noqa: E402
from bankchurn.preparation import prepare_dataset  # noqa: E402


def make_churn_frame(n: int = 1000, churn_rate: float = 0.2, seed: int = 0) -> pd.DataFrame:
    """
    Synthetic bank customers with an exact churn share and a learnable signal
    in age, balance, geography and activity.
    """
    rng = np.random.default_rng(seed)
    y = np.zeros(n, dtype=int)
    y[: int(round(n * churn_rate))] = 1
    rng.shuffle(y)

    geo_churn = rng.choice(["France", "Germany", "Spain"], n, p=[0.35, 0.45, 0.20])
    geo_stay = rng.choice(["France", "Germany", "Spain"], n, p=[0.55, 0.20, 0.25])
    active = np.where(y == 1, rng.random(n) < 0.35, rng.random(n) < 0.55).astype(int)
    balance = np.where(rng.random(n) < 0.35, 0.0, rng.normal(100000, 30000, n).clip(1000)) + 20000 * y

    return pd.DataFrame(
        {
            "RowNumber": np.arange(1, n + 1),
            "CustomerId": 15600000 + np.arange(n),
            "Surname": [f"Name{i}" for i in range(n)],
            "CreditScore": rng.normal(650, 90, n).round().astype(int),
            "Geography": np.where(y == 1, geo_churn, geo_stay),
            "Gender": rng.choice(["Female", "Male"], n),
            "Age": (rng.normal(37, 8, n) + 10 * y).round().clip(18, 92).astype(int),
            "Tenure": rng.integers(0, 11, n),
            "Balance": balance.round(2),
            "NumOfProducts": rng.choice([1, 2, 3, 4], n, p=[0.5, 0.45, 0.04, 0.01]),
            "HasCrCard": rng.integers(0, 2, n),
            "IsActiveMember": active,
            "EstimatedSalary": rng.uniform(10000, 200000, n).round(2),
            "Exited": y,
        }
    )


@pytest.fixture
def schema():
    return get_feature_schema()


@pytest.fixture
def raw_df():
    return make_churn_frame()


@pytest.fixture
def churn_df(raw_df, schema):
    df, _ = prepare_dataset(raw_df, schema)
    return df


@pytest.fixture
def make_frame():
    return make_churn_frame
