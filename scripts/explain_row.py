"""
Explain one subject (row) with performance-weighted SHAP contributions.

Example:
python scripts/explain_row.py --config configs/default.yaml --row-index 12 \
  --features age bmi --output outputs/wmshap/rows
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from wmshap.config import load_config
from wmshap.pipeline import run_aggregation, write_row
from wmshap.utils.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Weighted SHAP explanation of a single row.")
    parser.add_argument("--config", default="configs/default.yaml", help="Path to config YAML.")
    parser.add_argument("--output", default="outputs/wmshap/rows", help="Output directory.")
    parser.add_argument("--row-index", type=int, default=None, help="Row to explain (defaults to config).")
    parser.add_argument("--features", nargs="+", default=None, help="Restrict to these features.")
    parser.add_argument("--no-plot", action="store_true", help="Skip chart rendering.")
    return parser.parse_args()


def main() -> None:
    setup_logging()
    args = parse_args()
    cfg = load_config(args.config)
    if args.features:
        cfg.row.features = list(args.features)
    if args.no_plot:
        cfg.plot.enabled = False
    result = run_aggregation(cfg)
    explanation = write_row(result, cfg, args.output, row_index=args.row_index)
    print(explanation.table.to_string(index=False))


if __name__ == "__main__":
    main()
