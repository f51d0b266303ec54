from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from wmshap.analysis.stats import normalize_weights, weighted_summary
from wmshap.data.contributions import DEFAULT_BIAS_COLUMNS, align_contributions, sample_rows
from wmshap.data.performance import PerformanceInput, performance_table, resolve_scores

logger = logging.getLogger(__name__)

METHODS = ("mean", "lowerCI")


class InsufficientModelsError(ValueError):
    """Fewer models meet the performance threshold than required."""


class NoFeaturesSelectedError(ValueError):
    """No feature satisfies the selection policy."""


@dataclass
class ShapleyResult:
    summary: pd.DataFrame
    selected_features: list[str]
    weights: pd.Series
    ratios: pd.DataFrame
    contributions: dict[str, pd.DataFrame]
    performance: pd.DataFrame
    performance_metric: str
    confidence: float
    plot: Optional[Figure] = None
    contribution_plot: Optional[Figure] = None
    excluded_models: list[str] = field(default_factory=list)
    sampled_rows: Optional[list[int]] = None

    @property
    def model_ids(self) -> list[str]:
        return list(self.weights.index)

    @property
    def feature_names(self) -> list[str]:
        return list(self.ratios.columns)

    def to_dict(self) -> dict:
        """Serializable view of the summary and weights."""
        return {
            "performance_metric": self.performance_metric,
            "confidence": self.confidence,
            "weights": {k: float(v) for k, v in self.weights.items()},
            "excluded_models": list(self.excluded_models),
            "selected_features": list(self.selected_features),
            "sampled_rows": self.sampled_rows,
            "summary": json.loads(self.summary.to_json(orient="records")),
        }


def feature_ratios(frame: pd.DataFrame) -> pd.Series:
    """
    Mean share of each feature in a row's total absolute SHAP.

    Rows whose contributions are all zero carry no attribution and are
    skipped; a model without any informative row gets zero everywhere.
    """
    abs_vals = frame.abs().to_numpy(dtype=float)
    totals = abs_vals.sum(axis=1)
    informative = totals > 0
    if not informative.any():
        return pd.Series(0.0, index=frame.columns)
    shares = abs_vals[informative] / totals[informative, None]
    return pd.Series(shares.mean(axis=0), index=frame.columns)


def qualifying_models(scores: pd.Series, minimum_performance: float) -> pd.Series:
    """Scores of the models that meet the performance threshold."""
    return scores[scores >= minimum_performance]


def model_weights(scores: pd.Series, standardize: bool = False) -> pd.Series:
    """Turn performance scores into aggregation weights."""
    values = scores.to_numpy(dtype=float)
    if (values < 0).any():
        raise ValueError("Negative performance scores cannot be used as weights; raise minimum_performance.")
    if values.sum() <= 0:
        raise ValueError("Qualifying models must have a positive total performance to be used as weights.")
    if standardize:
        values = normalize_weights(values)
    return pd.Series(values, index=scores.index, name="weight")


def select_features(
    summary: pd.DataFrame,
    method: str = "mean",
    cutoff: float = 0.01,
    top_n_features: Optional[int] = None,
) -> list[str]:
    if method not in METHODS:
        raise ValueError(f"Unknown method '{method}'; expected one of {METHODS}.")
    ranked = summary.sort_values("mean", ascending=False)
    if top_n_features is not None:
        if top_n_features < 1:
            raise ValueError("top_n_features must be a positive integer when set.")
        return ranked["feature"].head(top_n_features).tolist()
    column = "mean" if method == "mean" else "lower_ci"
    return ranked.loc[ranked[column] >= cutoff, "feature"].tolist()


def shapley(
    contributions: Mapping[str, Any],
    performance: PerformanceInput,
    performance_metric: str = "r2",
    performance_type: str = "xval",
    standardize_performance_metric: bool = False,
    minimum_performance: float = 0.0,
    n_models: int = 10,
    method: str = "mean",
    cutoff: float = 0.01,
    top_n_features: Optional[int] = None,
    confidence: float = 0.95,
    sample_size: Optional[int] = None,
    seed: int = 42,
    feature_names: Optional[Sequence[str]] = None,
    bias_columns: Sequence[str] = DEFAULT_BIAS_COLUMNS,
    plot: bool = True,
) -> ShapleyResult:
    """
    Weighted mean SHAP ratio (WMSHAP) across models.

    Each model's per-feature SHAP ratio is weighted by its held-out
    performance. Models scoring below `minimum_performance` are excluded and
    at least `n_models` must remain. Features are selected by `cutoff` on the
    weighted mean (`method="mean"`) or on the lower CI bound
    (`method="lowerCI"`), or as the `top_n_features` largest means.
    """
    if method not in METHODS:
        raise ValueError(f"Unknown method '{method}'; expected one of {METHODS}.")
    frames = align_contributions(contributions, feature_names=feature_names, bias_columns=bias_columns)
    sampled = sample_rows(frames, sample_size, seed=seed)

    perf = performance_table(performance, metric=performance_metric, performance_type=performance_type)
    scores = resolve_scores(perf, performance_metric, performance_type)
    missing = sorted(set(frames) - set(scores.index))
    if missing:
        raise ValueError(f"No '{performance_metric}' ({performance_type}) performance for models: {missing}")
    scores = scores.reindex(list(frames))

    kept = qualifying_models(scores, minimum_performance)
    excluded = [m for m in scores.index if m not in kept.index]
    if excluded:
        logger.info(
            "Excluded %d models with %s < %.4f: %s",
            len(excluded),
            performance_metric,
            minimum_performance,
            excluded,
        )
    if len(kept) < n_models:
        raise InsufficientModelsError(
            f"Only {len(kept)} models have {performance_metric} >= {minimum_performance}; at least {n_models} required."
        )
    weights = model_weights(kept, standardize=standardize_performance_metric)
    logger.info("Aggregating SHAP over %d models (weights sum to %.4f)", len(weights), weights.sum())

    kept_frames = {model_id: frames[model_id] for model_id in weights.index}
    # ratios come from the sampled rows; row explanations keep every row
    ratios = pd.DataFrame({model_id: feature_ratios(sampled[model_id]) for model_id in weights.index}).T
    ratios.index.name = "model_id"

    summary = weighted_summary(ratios, weights, confidence=confidence)
    selected = select_features(summary, method=method, cutoff=cutoff, top_n_features=top_n_features)
    if not selected:
        raise NoFeaturesSelectedError(
            f"No features have {'WMSHAP' if method == 'mean' else 'lower CI'} >= {cutoff}; lower the cutoff."
        )
    summary["selected"] = summary["feature"].isin(selected)
    summary = summary.sort_values("mean", ascending=False).reset_index(drop=True)
    logger.info("Selected %d of %d features", len(selected), len(summary))

    result = ShapleyResult(
        summary=summary,
        selected_features=selected,
        weights=weights,
        ratios=ratios,
        contributions=kept_frames,
        performance=perf,
        performance_metric=performance_metric,
        confidence=confidence,
        excluded_models=excluded,
        sampled_rows=None if sample_size is None else [int(i) for i in next(iter(sampled.values())).index],
    )
    if plot:
        # plots imports this module
        from wmshap.analysis.plots import plot_contributions, plot_wmshap

        result.plot = plot_wmshap(result)
        result.contribution_plot = plot_contributions(result)
    return result


def weighted_contributions(result: ShapleyResult, features: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Performance-weighted mean SHAP value per row and feature across models."""
    features = list(features) if features is not None else list(result.selected_features)
    w = result.weights.to_numpy(dtype=float)
    stacked = np.stack([result.contributions[m][features].to_numpy(dtype=float) for m in result.weights.index])
    mean = np.tensordot(w, stacked, axes=1) / w.sum()
    return pd.DataFrame(mean, columns=features)
