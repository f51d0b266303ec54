"""
Charts for WMSHAP results.

Every helper returns a matplotlib Figure; saving and closing is left to the
caller (see `wmshap.utils.io.save_figure`).
"""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

from wmshap.analysis.aggregate import ShapleyResult, weighted_contributions
from wmshap.analysis.domain import DomainSummary
from wmshap.analysis.row import RowExplanation

sns.set_style("whitegrid")

POSITIVE_COLOR = "#d62728"
NEGATIVE_COLOR = "#1f77b4"


def _ci_errors(table: pd.DataFrame) -> np.ndarray:
    return np.vstack(
        [
            (table["mean"] - table["lower_ci"]).to_numpy(),
            (table["upper_ci"] - table["mean"]).to_numpy(),
        ]
    )


def _bar_with_ci(
    table: pd.DataFrame,
    label_col: str,
    title: str,
    xlabel: str,
    palette: str = "crest",
) -> Figure:
    # largest on top
    table = table.iloc[::-1]
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.35 * len(table) + 1.5)))
    colors = sns.color_palette(palette, n_colors=len(table))
    ax.barh(
        table[label_col].astype(str),
        table["mean"],
        xerr=_ci_errors(table),
        color=colors,
        ecolor="black",
        capsize=3,
    )
    ax.set_xlabel(xlabel)
    ax.set_ylabel("")
    ax.set_title(title)
    fig.tight_layout()
    return fig


def plot_wmshap(result: ShapleyResult, max_features: int = 20, palette: str = "crest") -> Figure:
    """Horizontal bars of WMSHAP with CI error bars for the selected features."""
    table = result.summary[result.summary["selected"]].head(max_features)
    pct = int(round(result.confidence * 100))
    return _bar_with_ci(
        table,
        "feature",
        title=f"Weighted mean SHAP ratio ({len(result.weights)} models, {pct}% CI)",
        xlabel=f"WMSHAP (weighted by {result.performance_metric})",
        palette=palette,
    )


def plot_contributions(result: ShapleyResult, max_features: int = 20, palette: str = "crest") -> Figure:
    """Strip plot of weighted per-row SHAP values for the selected features."""
    features = result.summary.loc[result.summary["selected"], "feature"].head(max_features).tolist()
    long_df = weighted_contributions(result, features).melt(var_name="feature", value_name="shap")
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.35 * len(features) + 1.5)))
    colors = dict(zip(features, sns.color_palette(palette, n_colors=len(features))))
    sns.stripplot(
        data=long_df, x="shap", y="feature", hue="feature", order=features, palette=colors, size=3, alpha=0.5, ax=ax
    )
    if ax.get_legend() is not None:
        ax.get_legend().remove()
    ax.axvline(0.0, color="grey", linestyle="--", linewidth=1)
    ax.set_xlabel("Weighted SHAP contribution")
    ax.set_ylabel("")
    ax.set_title("Per-row contributions")
    fig.tight_layout()
    return fig


def plot_row(explanation: RowExplanation, max_features: int = 20) -> Figure:
    """Signed weighted SHAP of one row; colour shows the direction of the effect."""
    table = explanation.table.head(max_features).iloc[::-1]
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.35 * len(table) + 1.5)))
    colors = [POSITIVE_COLOR if v >= 0 else NEGATIVE_COLOR for v in table["mean"]]
    ax.barh(
        table["feature"].astype(str),
        table["mean"],
        xerr=_ci_errors(table),
        color=colors,
        ecolor="black",
        capsize=3,
    )
    ax.axvline(0.0, color="grey", linewidth=1)
    ax.set_xlabel("Weighted SHAP contribution")
    ax.set_title(f"Row {explanation.row_index}")
    fig.tight_layout()
    return fig


def plot_domains(domain_summary: DomainSummary, max_features: int = 20, palette: str = "flare") -> Figure:
    return _bar_with_ci(
        domain_summary.summary.head(max_features),
        "domain",
        title="Weighted mean SHAP ratio by domain",
        xlabel="WMSHAP",
        palette=palette,
    )
