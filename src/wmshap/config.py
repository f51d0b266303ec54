from dataclasses import dataclass, field, fields
from typing import Optional, Any
import yaml

from wmshap.analysis.aggregate import METHODS
from wmshap.data.performance import METRICS, PERFORMANCE_TYPES


@dataclass
class InputConfig:
    contributions_dir: str = "data/shap"
    contributions_pattern: str = "*.csv"
    performance_file: str = "data/performance.csv"
    bias_columns: list[str] = field(default_factory=lambda: ["BiasTerm"])


@dataclass
class AggregationConfig:
    performance_metric: str = "r2"
    performance_type: str = "xval"
    standardize_performance_metric: bool = False
    minimum_performance: float = 0.0
    n_models: int = 10
    method: str = "mean"
    cutoff: float = 0.01
    top_n_features: Optional[int] = None
    confidence: float = 0.95
    sample_size: Optional[int] = None
    seed: int = 42


@dataclass
class RowConfig:
    row_index: int = 0
    features: Optional[list[str]] = None


@dataclass
class PlotConfig:
    enabled: bool = True
    max_features: int = 20
    dpi: int = 200
    palette: str = "crest"


@dataclass
class ShapleyConfig:
    inputs: InputConfig = field(default_factory=InputConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    row: RowConfig = field(default_factory=RowConfig)
    plot: PlotConfig = field(default_factory=PlotConfig)
    domains: dict[str, list[str]] = field(default_factory=dict)


def _dict_to_dataclass(cls: Any, data: dict):
    if not isinstance(data, dict):
        raise ValueError(f"Config section for {cls.__name__} must be a mapping.")
    unknown = set(data) - {f.name for f in fields(cls)}
    if unknown:
        raise ValueError(f"Unknown keys in config section {cls.__name__}: {sorted(unknown)}")
    return cls(**data)


def validate_config(cfg: ShapleyConfig) -> None:
    agg = cfg.aggregation
    if agg.performance_metric not in METRICS:
        raise ValueError(f"Unknown performance_metric '{agg.performance_metric}'; expected one of {METRICS}.")
    if agg.performance_type not in PERFORMANCE_TYPES:
        raise ValueError(
            f"Unknown performance_type '{agg.performance_type}'; expected one of {PERFORMANCE_TYPES}."
        )
    if agg.method not in METHODS:
        raise ValueError(f"Unknown method '{agg.method}'; expected one of {METHODS}.")
    if agg.n_models < 1:
        raise ValueError("n_models must be at least 1.")
    if not 0.0 < agg.confidence < 1.0:
        raise ValueError("confidence must lie strictly between 0 and 1.")
    if agg.top_n_features is not None and agg.top_n_features < 1:
        raise ValueError("top_n_features must be a positive integer when set.")


def load_config(path: str) -> ShapleyConfig:
    """Load YAML config from path into ShapleyConfig dataclasses."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level.")
    cfg = ShapleyConfig(
        inputs=_dict_to_dataclass(InputConfig, raw.get("inputs") or {}),
        aggregation=_dict_to_dataclass(AggregationConfig, raw.get("aggregation") or {}),
        row=_dict_to_dataclass(RowConfig, raw.get("row") or {}),
        plot=_dict_to_dataclass(PlotConfig, raw.get("plot") or {}),
        domains=dict(raw.get("domains") or {}),
    )
    validate_config(cfg)
    return cfg


def config_to_dict(cfg: ShapleyConfig) -> dict:
    """Convert ShapleyConfig to a serializable dict."""
    return {
        "inputs": cfg.inputs.__dict__,
        "aggregation": cfg.aggregation.__dict__,
        "row": cfg.row.__dict__,
        "plot": cfg.plot.__dict__,
        "domains": cfg.domains,
    }
