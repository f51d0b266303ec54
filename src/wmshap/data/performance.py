from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Iterable, Mapping, Union

import numpy as np
import pandas as pd
from sklearn.metrics import (
    average_precision_score,
    fbeta_score,
    matthews_corrcoef,
    r2_score,
    roc_auc_score,
)

from wmshap.utils.io import load_table

logger = logging.getLogger(__name__)

# All supported metrics are higher-is-better.
METRICS = ("r2", "auc", "aucpr", "mcc", "f2")
PERFORMANCE_TYPES = ("train", "valid", "xval")
PERFORMANCE_COLUMNS = ["model_id", "metric", "value", "performance_type"]


@dataclass(frozen=True)
class PerformanceRecord:
    """Held-out performance of one model."""

    model_id: str
    value: float
    metric: str = "r2"
    performance_type: str = "xval"

    def __post_init__(self):
        if self.metric not in METRICS:
            raise ValueError(f"Unknown metric '{self.metric}'; expected one of {METRICS}.")
        if self.performance_type not in PERFORMANCE_TYPES:
            raise ValueError(
                f"Unknown performance_type '{self.performance_type}'; expected one of {PERFORMANCE_TYPES}."
            )


PerformanceInput = Union[Mapping[str, float], pd.Series, Iterable[PerformanceRecord], pd.DataFrame]


def performance_table(
    performance: PerformanceInput,
    metric: str = "r2",
    performance_type: str = "xval",
) -> pd.DataFrame:
    """
    Normalize performance input into a long table with PERFORMANCE_COLUMNS.

    A plain mapping of model id to score is tagged with `metric` and
    `performance_type`. A DataFrame lacking the metric/provenance columns is
    tagged the same way.
    """
    if isinstance(performance, pd.DataFrame):
        df = performance.copy()
        missing = {"model_id", "value"} - set(df.columns)
        if missing:
            raise ValueError(f"Performance table missing required columns: {missing}")
        if "metric" not in df.columns:
            df["metric"] = metric
        if "performance_type" not in df.columns:
            df["performance_type"] = performance_type
    elif isinstance(performance, (Mapping, pd.Series)):
        performance = dict(performance)
        df = pd.DataFrame(
            {
                "model_id": list(performance.keys()),
                "metric": metric,
                "value": list(performance.values()),
                "performance_type": performance_type,
            }
        )
    else:
        records = list(performance)
        if not all(isinstance(r, PerformanceRecord) for r in records):
            raise ValueError("Performance sequence must contain PerformanceRecord items.")
        df = pd.DataFrame([asdict(r) for r in records], columns=PERFORMANCE_COLUMNS)
    df["model_id"] = df["model_id"].astype(str)
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    return df[PERFORMANCE_COLUMNS].reset_index(drop=True)


def load_performance(path: str | Path) -> pd.DataFrame:
    """Load a performance table from CSV, parquet or JSON records."""
    df = load_table(path)
    logger.info("Loaded %d performance records from %s", len(df), path)
    return performance_table(df)


def resolve_scores(
    table: pd.DataFrame,
    metric: str = "r2",
    performance_type: str = "xval",
) -> pd.Series:
    """Pick one score per model for the requested metric and provenance."""
    if metric not in METRICS:
        raise ValueError(f"Unknown performance_metric '{metric}'; expected one of {METRICS}.")
    if performance_type not in PERFORMANCE_TYPES:
        raise ValueError(f"Unknown performance_type '{performance_type}'; expected one of {PERFORMANCE_TYPES}.")
    mask = (table["metric"] == metric) & (table["performance_type"] == performance_type)
    subset = table.loc[mask]
    if subset.empty:
        raise ValueError(f"No performance records for metric '{metric}' ({performance_type}).")
    duplicated = subset["model_id"].duplicated()
    if duplicated.any():
        raise ValueError(
            f"Duplicate performance records for models: {sorted(subset.loc[duplicated, 'model_id'].unique())}"
        )
    scores = subset.set_index("model_id")["value"].astype(float)
    if scores.isna().any():
        raise ValueError(f"Non-numeric performance for models: {sorted(scores.index[scores.isna()])}")
    return scores


def score_predictions(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    metric: str = "r2",
    threshold: float = 0.5,
) -> float:
    """
    Compute a supported metric from held-out predictions.

    For classification metrics `y_pred` holds positive-class probabilities;
    `mcc` and `f2` binarize them at `threshold`.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred, dtype=float)
    if metric == "r2":
        return float(r2_score(y_true, y_pred))
    if metric == "auc":
        return float(roc_auc_score(y_true, y_pred))
    if metric == "aucpr":
        return float(average_precision_score(y_true, y_pred))
    labels = (y_pred >= threshold).astype(int)
    if metric == "mcc":
        return float(matthews_corrcoef(y_true, labels))
    if metric == "f2":
        return float(fbeta_score(y_true, labels, beta=2, zero_division=0))
    raise ValueError(f"Unknown metric '{metric}'; expected one of {METRICS}.")
