import numpy as np
import pandas as pd
import pytest
import shap
from matplotlib.figure import Figure

from wmshap.analysis.aggregate import (
    InsufficientModelsError,
    NoFeaturesSelectedError,
    feature_ratios,
    model_weights,
    qualifying_models,
    shapley,
    weighted_contributions,
)
from conftest import FEATURES, make_contributions


def test_feature_ratios_sum_to_one():
    frame = pd.DataFrame({"a": [1.0, -3.0], "b": [1.0, 1.0]})
    ratios = feature_ratios(frame)
    np.testing.assert_allclose(ratios.values, [(0.5 + 0.75) / 2, (0.5 + 0.25) / 2])
    assert ratios.sum() == pytest.approx(1.0)


def test_feature_ratios_skip_all_zero_rows():
    frame = pd.DataFrame({"a": [2.0, 0.0], "b": [2.0, 0.0]})
    np.testing.assert_allclose(feature_ratios(frame).values, [0.5, 0.5])
    empty = pd.DataFrame({"a": [0.0], "b": [0.0]})
    np.testing.assert_allclose(feature_ratios(empty).values, [0.0, 0.0])


def test_shapley_summary(contributions, performance):
    result = shapley(contributions, performance, n_models=4, plot=False)
    assert list(result.summary.columns) == ["feature", "mean", "sd", "lower_ci", "upper_ci", "selected"]
    assert set(result.summary["feature"]) == set(FEATURES)
    assert result.selected_features[0] == "age"
    assert "noise" not in result.selected_features
    assert result.summary["mean"].sum() == pytest.approx(1.0)
    assert (result.summary["lower_ci"] <= result.summary["mean"]).all()
    assert (result.summary["mean"] <= result.summary["upper_ci"]).all()
    assert result.plot is None


def test_uniform_performance_gives_unweighted_mean(contributions):
    uniform = {model_id: 0.5 for model_id in contributions}
    result = shapley(contributions, uniform, n_models=4, plot=False)
    means = result.summary.set_index("feature")["mean"]
    expected = result.ratios.mean(axis=0)
    np.testing.assert_allclose(means.loc[expected.index].values, expected.values)


def test_weights_follow_performance(contributions, performance):
    result = shapley(contributions, performance, n_models=4, plot=False)
    assert result.weights.to_dict() == pytest.approx(performance)
    standardized = shapley(contributions, performance, n_models=4, standardize_performance_metric=True, plot=False)
    assert standardized.weights.sum() == pytest.approx(4.0)
    # rescaling weights does not move the weighted mean
    np.testing.assert_allclose(standardized.summary["mean"], result.summary["mean"])


def test_raising_threshold_never_adds_models(performance):
    scores = pd.Series(performance)
    counts = [len(qualifying_models(scores, t)) for t in [0.0, 0.3, 0.5, 0.7, 0.85, 0.95]]
    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 4 and counts[-1] == 0


def test_threshold_excludes_models(contributions, performance):
    result = shapley(contributions, performance, minimum_performance=0.5, n_models=3, plot=False)
    assert result.model_ids == ["model_0", "model_1", "model_2"]
    assert result.excluded_models == ["model_3"]
    assert set(result.contributions) == set(result.model_ids)


def test_too_few_models_fails(contributions, performance):
    with pytest.raises(InsufficientModelsError):
        shapley(contributions, performance, minimum_performance=0.7, n_models=3, plot=False)
    with pytest.raises(ValueError):
        shapley(contributions, performance, n_models=10, plot=False)


def test_top_n_features(contributions, performance):
    result = shapley(contributions, performance, n_models=4, top_n_features=2, plot=False)
    assert result.selected_features == ["age", "bmi"]
    assert result.summary["selected"].sum() == 2
    everything = shapley(contributions, performance, n_models=4, top_n_features=50, plot=False)
    assert len(everything.selected_features) == len(FEATURES)


def test_lower_ci_selection_is_stricter(contributions, performance):
    by_mean = shapley(contributions, performance, n_models=4, method="mean", cutoff=0.05, plot=False)
    by_lower = shapley(contributions, performance, n_models=4, method="lowerCI", cutoff=0.05, plot=False)
    assert set(by_lower.selected_features) <= set(by_mean.selected_features)


def test_no_feature_passes_cutoff(contributions, performance):
    with pytest.raises(NoFeaturesSelectedError):
        shapley(contributions, performance, n_models=4, cutoff=0.99, plot=False)


def test_unknown_method(contributions, performance):
    with pytest.raises(ValueError):
        shapley(contributions, performance, n_models=4, method="median", plot=False)


def test_missing_performance(contributions, performance):
    del performance["model_2"]
    with pytest.raises(ValueError, match="model_2"):
        shapley(contributions, performance, n_models=1, plot=False)


def test_negative_weights_rejected():
    with pytest.raises(ValueError):
        model_weights(pd.Series({"a": 0.5, "b": -0.1}))
    with pytest.raises(ValueError):
        model_weights(pd.Series({"a": 0.0, "b": 0.0}))


def test_bias_term_dropped(performance):
    contributions = make_contributions()
    for frame in contributions.values():
        frame["BiasTerm"] = 10.0
    result = shapley(contributions, performance, n_models=4, plot=False)
    assert "BiasTerm" not in result.feature_names


def test_explanation_input(performance):
    frames = make_contributions()
    explanations = {
        model_id: shap.Explanation(values=frame.to_numpy(), feature_names=FEATURES)
        for model_id, frame in frames.items()
    }
    from_frames = shapley(frames, performance, n_models=4, plot=False)
    from_explanations = shapley(explanations, performance, n_models=4, plot=False)
    pd.testing.assert_frame_equal(from_frames.summary, from_explanations.summary)


def test_sample_size(contributions, performance):
    result = shapley(contributions, performance, n_models=4, sample_size=10, seed=3, plot=False)
    assert len(result.sampled_rows) == 10
    assert all(len(frame) == 40 for frame in result.contributions.values())
    sampled_ratios = pd.DataFrame(
        {m: feature_ratios(contributions[m].iloc[result.sampled_rows]) for m in result.model_ids}
    ).T
    np.testing.assert_allclose(result.ratios.to_numpy(), sampled_ratios.to_numpy())
    again = shapley(contributions, performance, n_models=4, sample_size=10, seed=3, plot=False)
    pd.testing.assert_frame_equal(result.summary, again.summary)


def test_weighted_contributions(contributions, performance):
    result = shapley(contributions, performance, n_models=4, plot=False)
    weighted = weighted_contributions(result, ["age"])
    w = np.array([performance[m] for m in result.model_ids])
    expected = sum(w[i] * contributions[m]["age"].to_numpy() for i, m in enumerate(result.model_ids)) / w.sum()
    np.testing.assert_allclose(weighted["age"].to_numpy(), expected)


def test_plots_attached(contributions, performance):
    result = shapley(contributions, performance, n_models=4)
    assert isinstance(result.plot, Figure)
    assert isinstance(result.contribution_plot, Figure)


def test_to_dict(contributions, performance):
    payload = shapley(contributions, performance, n_models=4, plot=False).to_dict()
    assert payload["performance_metric"] == "r2"
    assert len(payload["summary"]) == len(FEATURES)
    assert payload["selected_features"][0] == "age"
