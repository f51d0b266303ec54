"""
Aggregate per-model SHAP contributions into weighted mean SHAP ratios (WMSHAP).

Reads one SHAP table per model from a directory and a performance table, then
writes the WMSHAP summary, model weights, per-model ratios and charts.

Example:
python scripts/aggregate_shap.py \
  --config configs/default.yaml \
  --output outputs/wmshap \
  --minimum-performance 0.5 --top-n-features 15
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from wmshap.config import load_config, validate_config
from wmshap.pipeline import run_aggregation, write_aggregation
from wmshap.utils.io import ensure_dir
from wmshap.utils.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute performance-weighted mean SHAP ratios.")
    parser.add_argument("--config", default="configs/default.yaml", help="Path to config YAML.")
    parser.add_argument("--output", default="outputs/wmshap", help="Output directory for tables and charts.")
    parser.add_argument("--minimum-performance", type=float, default=None, help="Override minimum performance.")
    parser.add_argument("--n-models", type=int, default=None, help="Override minimum number of qualifying models.")
    parser.add_argument("--top-n-features", type=int, default=None, help="Select the N largest WMSHAP features.")
    parser.add_argument("--method", choices=["mean", "lowerCI"], default=None, help="Feature selection criterion.")
    parser.add_argument("--cutoff", type=float, default=None, help="Override feature selection cutoff.")
    parser.add_argument("--no-plot", action="store_true", help="Skip chart rendering.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    ensure_dir(args.output)
    setup_logging(logfile=str(Path(args.output) / "aggregate_shap.log"))
    cfg = load_config(args.config)
    for name in ("minimum_performance", "n_models", "top_n_features", "method", "cutoff"):
        value = getattr(args, name)
        if value is not None:
            setattr(cfg.aggregation, name, value)
    if args.no_plot:
        cfg.plot.enabled = False
    validate_config(cfg)

    result = run_aggregation(cfg)
    write_aggregation(result, cfg, args.output)


if __name__ == "__main__":
    main()
