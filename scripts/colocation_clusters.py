#!/usr/bin/env python3
"""
Co-location events and clustering over a directory of animal-day CSVs.

CSV files must be named ID{animal}_{ddmmyy}.csv. Every pair of animals
sharing a date is checked for co-location; the events are then clustered
with k-means++, isolation forest or DBSCAN.
"""

import argparse
import json
from dataclasses import replace
from pathlib import Path

import pandas as pd

from herdsense.clustering import METHODS, run_clustering
from herdsense.colocation import DatasetRegistry, detect_colocation, parse_dataset_name, parse_date_code, prepare_track
from herdsense.data import records_from_frame
from herdsense.errors import InsufficientDataError, ParseError
from herdsense.utils import get_logger, load_facility, load_pipeline_config, setup_logging

logger = get_logger("scripts.colocation")


def load_registry(data_dir: Path, config, fences) -> DatasetRegistry:
    registry = DatasetRegistry()
    for path in sorted(data_dir.glob("ID*_*.csv")):
        try:
            animal, day = parse_dataset_name(path.stem)
        except ParseError:
            logger.warning(f"Skipping {path.name}: not an ID{{animal}}_{{ddmmyy}} file")
            continue
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
        try:
            track = prepare_track(records_from_frame(frame), fences, config.cleaning, config.resample)
        except InsufficientDataError as e:
            logger.warning(f"Skipping {path.name}: {e}")
            continue
        registry.add(animal, day, track)
    return registry


def main():
    parser = argparse.ArgumentParser(description="Co-location detection and clustering")
    parser.add_argument("data_dir", type=Path, help="Directory of ID{animal}_{ddmmyy}.csv files")
    parser.add_argument("--facility", type=Path, default=Path("configs/facility.yaml"))
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--set", nargs="*", default=[], dest="overrides")
    parser.add_argument("--from", dest="date_from", default=None, help="First date (ddmmyy)")
    parser.add_argument("--to", dest="date_to", default=None, help="Last date (ddmmyy)")
    parser.add_argument("--method", choices=METHODS + ("all",), default=None)
    parser.add_argument("--period", choices=("all", "day", "night"), default=None)
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--output", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else "INFO")
    config = load_pipeline_config(args.config, args.overrides)
    facility = load_facility(args.facility) if args.facility.exists() else None

    registry = load_registry(args.data_dir, config, facility.fences if facility else None)
    registry = registry.filter_dates(
        parse_date_code(args.date_from) if args.date_from else None,
        parse_date_code(args.date_to) if args.date_to else None,
    )
    events = detect_colocation(registry, config.colocation, n_workers=args.workers, verbose=True)

    print("=" * 70)
    print(f"Co-location: {len(events)} events over {len(registry.dates())} days")
    print(f"  day: {sum(e.period == 'day' for e in events)}, night: {sum(e.period == 'night' for e in events)}")
    print("=" * 70)

    clustering = config.clustering
    if args.period:
        clustering = replace(clustering, period=args.period)
    methods = METHODS if args.method == "all" else (args.method or clustering.method,)

    results = {}
    for method in methods:
        result = run_clustering(events, replace(clustering, method=method))
        results[method] = result.to_dict()
        print()
        print(result.summary())

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w") as f:
            json.dump({"events": [e.to_dict() for e in events], "clustering": results}, f, indent=2)
        print(f"\n[Results saved to: {args.output}]")


if __name__ == "__main__":
    main()
