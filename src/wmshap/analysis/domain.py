from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import pandas as pd
from matplotlib.figure import Figure

from wmshap.analysis.aggregate import ShapleyResult
from wmshap.analysis.stats import weighted_summary

logger = logging.getLogger(__name__)


@dataclass
class DomainSummary:
    summary: pd.DataFrame
    ratios: pd.DataFrame
    plot: Optional[Figure] = None


def _check_domains(result: ShapleyResult, domains: Mapping[str, Sequence[str]]) -> None:
    if not domains:
        raise ValueError("At least one domain is required.")
    seen: dict[str, str] = {}
    for name, members in domains.items():
        if not members:
            raise ValueError(f"Domain '{name}' has no features.")
        unknown = [f for f in members if f not in result.feature_names]
        if unknown:
            raise ValueError(f"Domain '{name}' lists unknown features: {unknown}")
        for feature in members:
            if feature in seen:
                raise ValueError(f"Feature '{feature}' is assigned to both '{seen[feature]}' and '{name}'.")
            seen[feature] = name


def shapley_domain(
    result: ShapleyResult,
    domains: Mapping[str, Sequence[str]],
    plot: bool = True,
) -> DomainSummary:
    """Weighted mean SHAP ratio of feature groups, summed per model before weighting."""
    _check_domains(result, domains)
    ratios = pd.DataFrame(
        {name: result.ratios[list(members)].sum(axis=1) for name, members in domains.items()},
        index=result.ratios.index,
    )
    summary = weighted_summary(ratios, result.weights, confidence=result.confidence)
    summary = summary.rename(columns={"feature": "domain"})
    summary = summary.sort_values("mean", ascending=False).reset_index(drop=True)
    unassigned = set(result.feature_names) - {f for members in domains.values() for f in members}
    if unassigned:
        logger.info("%d features are not assigned to any domain", len(unassigned))

    domain_summary = DomainSummary(summary=summary, ratios=ratios)
    if plot:
        from wmshap.analysis.plots import plot_domains

        domain_summary.plot = plot_domains(domain_summary)
    return domain_summary
