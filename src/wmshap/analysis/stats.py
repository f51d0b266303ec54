from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats


def z_value(confidence: float = 0.95) -> float:
    """Two-sided normal quantile for a confidence level."""
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must lie strictly between 0 and 1.")
    return float(stats.norm.ppf(0.5 + confidence / 2.0))


def normalize_weights(weights: np.ndarray) -> np.ndarray:
    """Rescale weights so they sum to the number of weights."""
    weights = np.asarray(weights, dtype=float)
    total = weights.sum()
    if total <= 0:
        raise ValueError("Model weights must have a positive sum.")
    return weights * len(weights) / total


def weighted_mean(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted mean along the first axis (models)."""
    values = np.asarray(values, dtype=float)
    w = normalize_weights(weights)
    return np.tensordot(w, values, axes=1) / w.sum()


def weighted_var(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Weighted variance along the first axis.

    Weights are normalized to sum to n, so the (n - 1) denominator matches
    the unweighted sample variance when all weights are equal. A single
    model has zero variance.
    """
    values = np.asarray(values, dtype=float)
    n = values.shape[0]
    if n < 2:
        return np.zeros(values.shape[1:])
    w = normalize_weights(weights)
    mean = np.tensordot(w, values, axes=1) / n
    resid = (values - mean) ** 2
    return np.tensordot(w, resid, axes=1) / (n - 1)


def weighted_summary(
    values: pd.DataFrame,
    weights: pd.Series,
    confidence: float = 0.95,
) -> pd.DataFrame:
    """
    Weighted mean, sd and normal-approximation CI per column of `values`.

    `values` is indexed by model id with one column per feature (or domain);
    `weights` is indexed by model id.
    """
    w = weights.reindex(values.index).to_numpy(dtype=float)
    if np.isnan(w).any():
        raise ValueError("Every model in the value table needs a weight.")
    mat = values.to_numpy(dtype=float)
    n = mat.shape[0]
    mean = weighted_mean(mat, w)
    sd = np.sqrt(weighted_var(mat, w))
    half_width = z_value(confidence) * sd / np.sqrt(n)
    return pd.DataFrame(
        {
            "feature": values.columns.astype(str),
            "mean": mean,
            "sd": sd,
            "lower_ci": mean - half_width,
            "upper_ci": mean + half_width,
        }
    )
