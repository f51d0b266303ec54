import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

FEATURES = ["age", "bmi", "glucose", "sex", "noise"]
SCALES = np.array([4.0, 2.0, 1.0, 0.5, 0.01])
PERFORMANCE = {"model_0": 0.9, "model_1": 0.8, "model_2": 0.6, "model_3": 0.3}


def make_contributions(n_models: int = 4, n_rows: int = 40, seed: int = 0) -> dict:
    rng = np.random.default_rng(seed)
    out = {}
    for i in range(n_models):
        values = rng.normal(size=(n_rows, len(FEATURES))) * SCALES
        out[f"model_{i}"] = pd.DataFrame(values, columns=FEATURES)
    return out


@pytest.fixture
def contributions():
    return make_contributions()


@pytest.fixture
def performance():
    return dict(PERFORMANCE)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
