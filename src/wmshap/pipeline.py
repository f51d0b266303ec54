from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt

from wmshap.analysis.aggregate import ShapleyResult, shapley
from wmshap.analysis.domain import shapley_domain
from wmshap.analysis.plots import plot_contributions, plot_domains, plot_wmshap
from wmshap.analysis.row import RowExplanation, shapley_row
from wmshap.config import ShapleyConfig, config_to_dict
from wmshap.data.contributions import load_contributions
from wmshap.data.performance import load_performance
from wmshap.utils.io import ensure_dir, save_figure, save_json

logger = logging.getLogger(__name__)


def run_aggregation(cfg: ShapleyConfig) -> ShapleyResult:
    """Load inputs named in the config and compute WMSHAP without plotting."""
    contributions = load_contributions(
        cfg.inputs.contributions_dir,
        pattern=cfg.inputs.contributions_pattern,
        bias_columns=cfg.inputs.bias_columns,
    )
    performance = load_performance(cfg.inputs.performance_file)
    agg = cfg.aggregation
    return shapley(
        contributions,
        performance,
        performance_metric=agg.performance_metric,
        performance_type=agg.performance_type,
        standardize_performance_metric=agg.standardize_performance_metric,
        minimum_performance=agg.minimum_performance,
        n_models=agg.n_models,
        method=agg.method,
        cutoff=agg.cutoff,
        top_n_features=agg.top_n_features,
        confidence=agg.confidence,
        sample_size=agg.sample_size,
        seed=agg.seed,
        bias_columns=cfg.inputs.bias_columns,
        plot=False,
    )


def write_aggregation(result: ShapleyResult, cfg: ShapleyConfig, output_dir: str | Path) -> None:
    output_dir = Path(output_dir)
    ensure_dir(output_dir)
    result.summary.to_csv(output_dir / "wmshap_summary.csv", index=False)
    result.weights.rename_axis("model_id").reset_index().to_csv(output_dir / "model_weights.csv", index=False)
    result.ratios.to_csv(output_dir / "model_ratios.csv")
    save_json({"config": config_to_dict(cfg), "result": result.to_dict()}, output_dir / "wmshap.json")

    if cfg.domains:
        domains = shapley_domain(result, cfg.domains, plot=False)
        domains.summary.to_csv(output_dir / "domain_summary.csv", index=False)
        if cfg.plot.enabled:
            fig = plot_domains(domains, max_features=cfg.plot.max_features, palette=cfg.plot.palette)
            save_figure(fig, output_dir / "domains.png", dpi=cfg.plot.dpi)
            plt.close(fig)

    if cfg.plot.enabled:
        figures = {
            "wmshap.png": plot_wmshap(result, max_features=cfg.plot.max_features, palette=cfg.plot.palette),
            "contributions.png": plot_contributions(result, max_features=cfg.plot.max_features, palette=cfg.plot.palette),
        }
        for name, fig in figures.items():
            save_figure(fig, output_dir / name, dpi=cfg.plot.dpi)
            plt.close(fig)
    logger.info("Saved WMSHAP outputs to %s", output_dir)


def write_row(
    result: ShapleyResult,
    cfg: ShapleyConfig,
    output_dir: str | Path,
    row_index: Optional[int] = None,
) -> RowExplanation:
    row_index = cfg.row.row_index if row_index is None else row_index
    explanation = shapley_row(result, row_index, features=cfg.row.features, plot=cfg.plot.enabled)
    output_dir = Path(output_dir)
    ensure_dir(output_dir)
    explanation.table.to_csv(output_dir / f"row_{row_index}.csv", index=False)
    if explanation.plot is not None:
        save_figure(explanation.plot, output_dir / f"row_{row_index}.png", dpi=cfg.plot.dpi)
        plt.close(explanation.plot)
    logger.info("Saved explanation of row %d to %s", row_index, output_dir)
    return explanation
