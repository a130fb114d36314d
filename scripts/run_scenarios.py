from __future__ import annotations

import argparse
import logging
from pathlib import Path

import os, sys
# Allow running this script from any working directory
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from imobserver.sim.simulator import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Run observer scenarios and export traces/metrics/plots")
    parser.add_argument(
        "--catalog",
        type=str,
        default=str(Path("scenarios") / "observer_catalog.json"),
        help="Path to observer_catalog.json",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output directory (default: outputs/batch_YYYYmmdd_HHMMSS)",
    )
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    out_dir = run_batch(args.catalog, out_dir=args.out)
    print("=== Batch scenarios finished ===")
    print(f"Catalog: {args.catalog}")
    print(f"Output:  {out_dir}")
    print("Files: metrics_all.csv, csv/*.csv, plots/*.png")


if __name__ == "__main__":
    main()
