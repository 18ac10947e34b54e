#!/usr/bin/env python3
"""
Per-day behavior analysis of collar telemetry CSVs.

Each CSV holds one animal-day with the tracker columns
timestamp, date, gps_lat, gps_lon, acc_x, acc_y, acc_z.
The file stem (e.g. ID227_141225) is used as the dataset name.
"""

import argparse
import json
from pathlib import Path

import pandas as pd

from herdsense.data import records_from_frame
from herdsense.pipeline import analyze_days
from herdsense.utils import load_facility, load_pipeline_config, setup_logging


def main():
    parser = argparse.ArgumentParser(description="Analyze animal-day telemetry CSVs")
    parser.add_argument("csv", nargs="+", type=Path, help="Input CSV files")
    parser.add_argument("--facility", type=Path, default=Path("configs/facility.yaml"),
                        help="Facility geometry YAML")
    parser.add_argument("--config", type=Path, default=None, help="Pipeline config YAML")
    parser.add_argument("--set", nargs="*", default=[], dest="overrides",
                        help="Config overrides, e.g. posture.min_dwell_sec=120")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes")
    parser.add_argument("--output", type=Path, default=None, help="Write results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else "INFO")
    config = load_pipeline_config(args.config, args.overrides)
    facility = load_facility(args.facility) if args.facility.exists() else None

    days = {}
    for path in args.csv:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
        days[path.stem] = records_from_frame(frame)

    batch = analyze_days(days, facility, config, n_workers=args.workers, verbose=True)

    print("=" * 70)
    print(batch.summary())
    print("=" * 70)
    for name in sorted(batch.results):
        print()
        print(batch.results[name].summary_text())
    for name, error in sorted(batch.failures.items()):
        print(f"\n[{name}] FAILED: {error}")

    if args.output is not None:
        payload = {name: result.to_dict() for name, result in batch.results.items()}
        payload["_failures"] = batch.failures
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        print(f"\n[Results saved to: {args.output}]")


if __name__ == "__main__":
    main()
