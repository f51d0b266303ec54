"""Input handling for SHAP contributions and model performance."""

from .contributions import (
    as_contribution_frame,
    align_contributions,
    load_contributions,
    sample_rows,
)
from .performance import (
    METRICS,
    PERFORMANCE_TYPES,
    PerformanceRecord,
    performance_table,
    load_performance,
    resolve_scores,
    score_predictions,
)

__all__ = [
    "as_contribution_frame",
    "align_contributions",
    "load_contributions",
    "sample_rows",
    "METRICS",
    "PERFORMANCE_TYPES",
    "PerformanceRecord",
    "performance_table",
    "load_performance",
    "resolve_scores",
    "score_predictions",
]
