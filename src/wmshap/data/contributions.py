from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
import shap

from wmshap.utils.io import load_table

logger = logging.getLogger(__name__)

DEFAULT_BIAS_COLUMNS = ("BiasTerm",)


def _explanation_values(
    explanation: shap.Explanation,
    class_index: Optional[int] = None,
) -> tuple[np.ndarray, Optional[list[str]]]:
    values = np.asarray(explanation.values)
    if values.ndim == 3:
        n_outputs = values.shape[2]
        if class_index is None:
            # binary classifiers: keep the positive class
            class_index = 1 if n_outputs > 1 else 0
            if n_outputs > 2:
                logger.warning(
                    "Explanation has %d outputs; keeping output %d. Pass class_index to choose another.",
                    n_outputs,
                    class_index,
                )
        if not 0 <= class_index < n_outputs:
            raise ValueError(f"class_index {class_index} out of range for {n_outputs} outputs.")
        values = values[:, :, class_index]
    names = explanation.feature_names
    return values, list(names) if names is not None else None


def as_contribution_frame(
    obj: Any,
    feature_names: Optional[Sequence[str]] = None,
    bias_columns: Sequence[str] = DEFAULT_BIAS_COLUMNS,
    class_index: Optional[int] = None,
) -> pd.DataFrame:
    """
    Convert one model's SHAP contributions into a rows x features DataFrame.

    Accepts a DataFrame, a 2d array or a `shap.Explanation`. Bias columns are
    dropped. `class_index` picks the output of a multi-output explanation.
    """
    if isinstance(obj, shap.Explanation):
        values, names = _explanation_values(obj, class_index)
        frame = pd.DataFrame(values, columns=list(feature_names) if feature_names is not None else names)
    elif isinstance(obj, pd.DataFrame):
        frame = obj.copy()
        if feature_names is not None:
            frame.columns = list(feature_names)
    else:
        values = np.asarray(obj, dtype=float)
        if values.ndim != 2:
            raise ValueError(f"SHAP contributions must be 2-dimensional, got shape {values.shape}")
        frame = pd.DataFrame(values, columns=feature_names)
    if frame.ndim != 2 or frame.shape[1] == 0:
        raise ValueError("SHAP contributions must contain at least one feature column.")
    frame.columns = [str(c) for c in frame.columns]
    drop = [c for c in frame.columns if c in set(bias_columns)]
    if drop:
        frame = frame.drop(columns=drop)
    return frame.astype(float).reset_index(drop=True)


def align_contributions(
    contributions: Mapping[str, Any],
    feature_names: Optional[Sequence[str]] = None,
    bias_columns: Sequence[str] = DEFAULT_BIAS_COLUMNS,
    class_index: Optional[int] = None,
) -> dict[str, pd.DataFrame]:
    """Normalize every model's contributions and check they share features and rows."""
    if not contributions:
        raise ValueError("No SHAP contributions were provided.")
    frames = {
        str(model_id): as_contribution_frame(obj, feature_names, bias_columns, class_index)
        for model_id, obj in contributions.items()
    }
    reference_id, reference = next(iter(frames.items()))
    columns = list(reference.columns)
    for model_id, frame in frames.items():
        if set(frame.columns) != set(columns):
            missing = set(columns) - set(frame.columns)
            extra = set(frame.columns) - set(columns)
            raise ValueError(
                f"Model '{model_id}' features differ from '{reference_id}': missing={sorted(missing)} extra={sorted(extra)}"
            )
        if len(frame) != len(reference):
            raise ValueError(
                f"Model '{model_id}' has {len(frame)} rows, expected {len(reference)} as in '{reference_id}'."
            )
        frames[model_id] = frame[columns]
    logger.info("Aligned SHAP contributions: %d models, %d rows, %d features", len(frames), len(reference), len(columns))
    return frames


def load_contributions(
    directory: str | Path,
    pattern: str = "*.csv",
    bias_columns: Sequence[str] = DEFAULT_BIAS_COLUMNS,
) -> dict[str, pd.DataFrame]:
    """Load one SHAP table per model from a directory; the file stem is the model id."""
    directory = Path(directory)
    paths = sorted(directory.glob(pattern))
    if not paths:
        raise ValueError(f"No SHAP contribution files matching '{pattern}' in {directory}")
    raw = {path.stem: load_table(path) for path in paths}
    logger.info("Loaded SHAP contributions for %d models from %s", len(raw), directory)
    return align_contributions(raw, bias_columns=bias_columns)


def sample_rows(
    frames: Mapping[str, pd.DataFrame],
    sample_size: Optional[int],
    seed: int = 42,
) -> dict[str, pd.DataFrame]:
    """Subsample the same rows from every model's contributions, keeping the original row labels."""
    frames = dict(frames)
    n_rows = len(next(iter(frames.values())))
    if sample_size is None or sample_size >= n_rows:
        return frames
    if sample_size < 1:
        raise ValueError("sample_size must be a positive integer.")
    rng = np.random.default_rng(seed)
    rows = np.sort(rng.choice(n_rows, size=sample_size, replace=False))
    logger.info("Subsampled %d of %d rows", sample_size, n_rows)
    return {model_id: frame.iloc[rows] for model_id, frame in frames.items()}
