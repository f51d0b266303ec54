import numpy as np
import pandas as pd
import pytest

from wmshap.analysis.stats import (
    normalize_weights,
    weighted_mean,
    weighted_summary,
    weighted_var,
    z_value,
)


def test_uniform_weights_match_unweighted_mean():
    values = np.array([[0.1, 0.5], [0.3, 0.2], [0.2, 0.3]])
    np.testing.assert_allclose(weighted_mean(values, np.ones(3)), values.mean(axis=0))
    np.testing.assert_allclose(weighted_mean(values, np.full(3, 7.0)), values.mean(axis=0))


def test_uniform_weights_match_sample_variance():
    values = np.array([[0.1, 0.5], [0.3, 0.2], [0.2, 0.3], [0.4, 0.0]])
    np.testing.assert_allclose(weighted_var(values, np.ones(4)), values.var(axis=0, ddof=1))


def test_weighted_mean_favours_heavier_model():
    values = np.array([[1.0], [0.0]])
    np.testing.assert_allclose(weighted_mean(values, np.array([3.0, 1.0])), [0.75])


def test_single_model_has_zero_variance():
    values = np.array([[0.4, 0.6]])
    np.testing.assert_allclose(weighted_var(values, np.array([0.8])), [0.0, 0.0])


def test_normalize_weights_sums_to_count():
    w = normalize_weights(np.array([0.9, 0.5, 0.1]))
    assert w.sum() == pytest.approx(3.0)
    with pytest.raises(ValueError):
        normalize_weights(np.zeros(3))


def test_z_value():
    assert z_value(0.95) == pytest.approx(1.959964, abs=1e-6)
    assert z_value(0.90) == pytest.approx(1.644854, abs=1e-6)
    with pytest.raises(ValueError):
        z_value(1.0)


def test_weighted_summary_bounds():
    rng = np.random.default_rng(1)
    values = pd.DataFrame(rng.uniform(size=(6, 3)), index=[f"m{i}" for i in range(6)], columns=["a", "b", "c"])
    weights = pd.Series(rng.uniform(0.1, 1.0, size=6), index=values.index)
    summary = weighted_summary(values, weights)
    assert list(summary["feature"]) == ["a", "b", "c"]
    assert (summary["lower_ci"] <= summary["mean"]).all()
    assert (summary["mean"] <= summary["upper_ci"]).all()
    # wider interval at higher confidence
    wide = weighted_summary(values, weights, confidence=0.99)
    assert (wide["upper_ci"] - wide["lower_ci"] >= summary["upper_ci"] - summary["lower_ci"]).all()


def test_weighted_summary_requires_weight_per_model():
    values = pd.DataFrame({"a": [0.1, 0.2]}, index=["m0", "m1"])
    with pytest.raises(ValueError):
        weighted_summary(values, pd.Series({"m0": 1.0}))


def test_z_value_matches_normal_quantile():
    from scipy import stats

    for confidence in (0.8, 0.95, 0.99):
        assert z_value(confidence) == pytest.approx(stats.norm.ppf(0.5 + confidence / 2.0))
