"""
Charlottesville Crime - Pipeline Runner

Runs the full sequence, each stage taking the previous stage's output:

    fetch -> normalize + build addresses -> deduplicate
          -> geocode (cache, quota) -> parse -> merge

Usage:
    from cville_crime.pipeline.runner import run_pipeline

    result = run_pipeline(execution_date="2024-01-15")
    result.geocoded  # crime records with lat/lon
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from cville_crime.datasets.crime.ingest import CrimeIngester
from cville_crime.datasets.crime.preprocess import CrimePreprocessor
from cville_crime.geocoding.cache import GeocodeCache
from cville_crime.geocoding.client import GeocodeClient
from cville_crime.pipeline.merge import (
    JoinReport,
    attach_geocodes,
    build_address_mapping,
    combine_batches,
    distinct_addresses,
    success_ratio,
)
from cville_crime.shared.config import Settings, get_config, get_data_path

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs and statistics of one pipeline run."""

    execution_date: str
    records: pd.DataFrame
    distinct: pd.DataFrame
    mapping: pd.DataFrame
    geocoded: pd.DataFrame
    join_reports: list[JoinReport] = field(default_factory=list)
    success_ratio: float = 0.0
    requests_sent: int = 0
    addresses_cached: int = 0
    output_path: str | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "execution_date": self.execution_date,
            "records": len(self.records),
            "distinct_addresses": len(self.distinct),
            "geocoded_records": len(self.geocoded),
            "success_ratio": round(self.success_ratio, 4),
            "requests_sent": self.requests_sent,
            "addresses_cached": self.addresses_cached,
            "join_reports": [r.to_dict() for r in self.join_reports],
            "output_path": self.output_path,
            "duration_seconds": self.duration_seconds,
        }


def prepare_records(
    raw: pd.DataFrame, execution_date: str, config: Settings
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Normalize raw records and derive the distinct-address table."""
    preprocessor = CrimePreprocessor(config)
    result = preprocessor.run(raw, execution_date)
    if not result.success:
        raise RuntimeError(f"Preprocessing failed: {result.error_message}")

    records = preprocessor.get_data()
    distinct = distinct_addresses(records["address"])
    logger.info(
        f"{len(records)} records share {len(distinct)} distinct addresses",
        extra={"records": len(records), "distinct_addresses": len(distinct)},
    )
    return records, distinct


def run_pipeline(
    execution_date: str | None = None,
    config: Settings | None = None,
    raw: pd.DataFrame | None = None,
    client: GeocodeClient | None = None,
    output_path: str | Path | None = None,
) -> PipelineResult:
    """
    Run the crime geocoding pipeline end to end.

    Args:
        execution_date: Run date in YYYY-MM-DD format (defaults to today, UTC)
        config: Configuration object (uses default if not provided)
        raw: Pre-fetched raw crime records; downloaded when None
        client: Geocode client; built from config with the on-disk cache when None
        output_path: Where to write the geocoded CSV; nothing is written when None

    Returns:
        PipelineResult
    """
    start_time = time.time()
    config = config or get_config()
    execution_date = execution_date or datetime.now(UTC).strftime("%Y-%m-%d")

    if raw is None:
        ingester = CrimeIngester(config)
        ingestion = ingester.run(execution_date)
        if not ingestion.success:
            raise RuntimeError(f"Ingestion failed: {ingestion.error_message}")
        raw = ingester.get_data()

    records, distinct = prepare_records(raw, execution_date, config)

    if client is None:
        client = GeocodeClient(config, cache=GeocodeCache(get_data_path("cache", config)))

    try:
        run = client.geocode_addresses(distinct["address"].tolist())
    finally:
        # Keep whatever was resolved, even if the quota ran out mid-run
        client.cache.save()

    parsed = combine_batches(run.results)
    mapping, mapping_report = build_address_mapping(distinct, parsed)
    geocoded, attach_report = attach_geocodes(records, mapping)

    written = None
    if output_path is not None:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        geocoded.to_csv(out, index=False)
        written = str(out)
        logger.info(f"Wrote {len(geocoded)} geocoded records to {out}")

    result = PipelineResult(
        execution_date=execution_date,
        records=records,
        distinct=distinct,
        mapping=mapping,
        geocoded=geocoded,
        join_reports=[mapping_report, attach_report],
        success_ratio=success_ratio(parsed),
        requests_sent=run.requests_sent,
        addresses_cached=run.addresses_cached,
        output_path=written,
        duration_seconds=time.time() - start_time,
    )
    logger.info("Pipeline complete", extra=result.to_dict())
    return result
