"""Analysis utilities."""

from .aggregate import (
    InsufficientModelsError,
    NoFeaturesSelectedError,
    ShapleyResult,
    shapley,
    weighted_contributions,
)
from .domain import DomainSummary, shapley_domain
from .row import RowExplanation, shapley_row

__all__ = [
    "InsufficientModelsError",
    "NoFeaturesSelectedError",
    "ShapleyResult",
    "shapley",
    "weighted_contributions",
    "DomainSummary",
    "shapley_domain",
    "RowExplanation",
    "shapley_row",
]
