"""
Crime Geocoding Script
Downloads Charlottesville crime reports, geocodes their addresses and writes
the geocoded records to CSV.

Examples:
    python scripts/geocode_crime.py
    python scripts/geocode_crime.py --input data/raw/crime.geojson --dry-run
    python scripts/geocode_crime.py --env prod --output data/processed/crime_geocoded.csv
"""

import argparse
import logging
import sys
from datetime import UTC, datetime

from cville_crime.datasets.crime.ingest import ingest_crime_data, load_crime_file
from cville_crime.geocoding.cache import GeocodeCache
from cville_crime.geocoding.quota import QuotaExceededError
from cville_crime.pipeline.runner import prepare_records, run_pipeline
from cville_crime.shared.config import get_config, get_data_path
from cville_crime.shared.logging_config import configure_logging

logger = logging.getLogger("geocode_crime")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Geocode Charlottesville crime reports")
    parser.add_argument("--env", choices=["dev", "prod"], default=None, help="Config environment")
    parser.add_argument("--input", default=None, help="Local crime GeoJSON (skips download)")
    parser.add_argument("--output", default=None, help="Destination CSV for geocoded records")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many lookups a run would need without calling the geocoder",
    )
    parser.add_argument("--date", default=None, help="Execution date (YYYY-MM-DD)")
    return parser.parse_args(argv)


def dry_run(raw, execution_date: str, config) -> int:
    """Log the number of addresses that still need geocoding."""
    _, distinct = prepare_records(raw, execution_date, config)
    cache = GeocodeCache(get_data_path("cache", config))
    todo = cache.missing(distinct["address"])
    limit = config.geocoding.daily_limit

    logger.info(f"Distinct addresses: {len(distinct)}")
    logger.info(f"Already cached: {len(distinct) - len(todo)}")
    logger.info(f"Lookups needed: {len(todo)} (daily limit {limit})")
    if len(todo) > limit:
        days = -(-len(todo) // limit)
        logger.warning(f"Lookups exceed the daily limit; about {days} days at the free tier")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    config = get_config(args.env)
    configure_logging(config)

    execution_date = args.date or datetime.now(UTC).strftime("%Y-%m-%d")
    raw = load_crime_file(args.input) if args.input else None

    if args.dry_run:
        if raw is None:
            raw = ingest_crime_data(execution_date, config)
        return dry_run(raw, execution_date, config)

    output = args.output or str(get_data_path("output", config))
    try:
        result = run_pipeline(execution_date, config=config, raw=raw, output_path=output)
    except QuotaExceededError as e:
        logger.error(f"{e}. Resolved addresses were cached; rerun tomorrow to continue.")
        return 2

    print("\n=== Geocoding Results ===")
    print(f"Crime records: {len(result.records)}")
    print(f"Distinct addresses: {len(result.distinct)}")
    print(f"Requests sent: {result.requests_sent}")
    print(f"Success ratio: {result.success_ratio:.1%}")
    for report in result.join_reports:
        print(f"{report.stage}: {report.rows_output} rows, {report.rows_dropped} dropped")
    print(f"Output: {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
