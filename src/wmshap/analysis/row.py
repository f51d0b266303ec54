from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import pandas as pd
from matplotlib.figure import Figure

from wmshap.analysis.aggregate import ShapleyResult
from wmshap.analysis.stats import weighted_summary

logger = logging.getLogger(__name__)


@dataclass
class RowExplanation:
    row_index: int
    table: pd.DataFrame
    plot: Optional[Figure] = None


def _check_features(result: ShapleyResult, features: Optional[Sequence[str]]) -> list[str]:
    if features is None:
        return list(result.selected_features)
    features = [str(f) for f in features]
    if not features:
        raise ValueError("features must name at least one feature.")
    unknown = [f for f in features if f not in result.feature_names]
    if unknown:
        raise ValueError(f"Unknown features requested: {unknown}")
    return features


def row_contributions(result: ShapleyResult, row_index: int, features: Sequence[str]) -> pd.DataFrame:
    """Signed SHAP values of one row, one line per model."""
    n_rows = len(next(iter(result.contributions.values())))
    if not 0 <= row_index < n_rows:
        raise ValueError(f"row_index {row_index} out of range for {n_rows} rows.")
    table = pd.DataFrame(
        {model_id: result.contributions[model_id].loc[row_index, list(features)] for model_id in result.model_ids}
    ).T
    table.index.name = "model_id"
    return table.astype(float)


def shapley_row(
    result: ShapleyResult,
    row_index: int,
    features: Optional[Sequence[str]] = None,
    plot: bool = True,
) -> RowExplanation:
    """
    Subject-level weighted SHAP for one row.

    Uses the same model weights as the aggregation. `features` defaults to
    the features selected by the aggregation. The `ratio` column is each
    feature's share of the row's total absolute weighted SHAP.
    """
    features = _check_features(result, features)
    per_model = row_contributions(result, row_index, features)
    table = weighted_summary(per_model, result.weights, confidence=result.confidence)
    total = table["mean"].abs().sum()
    table["ratio"] = table["mean"].abs() / total if total > 0 else 0.0
    table = table.reindex(table["mean"].abs().sort_values(ascending=False).index).reset_index(drop=True)
    logger.info("Explained row %d over %d features and %d models", row_index, len(features), len(result.weights))

    explanation = RowExplanation(row_index=row_index, table=table)
    if plot:
        from wmshap.analysis.plots import plot_row

        explanation.plot = plot_row(explanation)
    return explanation
