"""
Charlottesville Crime - Deduplication and Merging

Reduces crime records to the distinct addresses that need geocoding, then
joins parsed geocode results back onto the records by exact address string.

Joins:
    1. distinct addresses LEFT JOIN parsed results (address == query)
       -> address mapping, keeps addresses with no successful lookup
    2. crime records INNER JOIN successful mapping rows (address)
       -> geocoded records; records without a successful lookup are dropped

Each join returns a JoinReport so dropped rows are counted rather than lost
silently. All functions return new frames and leave their inputs untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import pandas as pd

from cville_crime.geocoding.responses import RESULT_COLUMNS, STATUS_OK, empty_results

logger = logging.getLogger(__name__)

GEOCODE_COLUMNS = ["status", "lat", "lon", "formatted_address", "location_type"]


@dataclass
class JoinReport:
    """Row accounting for one join."""

    stage: str
    rows_left: int
    rows_right: int
    rows_output: int
    rows_dropped: int = 0
    rows_unmatched: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for logging."""
        return {
            "stage": self.stage,
            "rows_left": self.rows_left,
            "rows_right": self.rows_right,
            "rows_output": self.rows_output,
            "rows_dropped": self.rows_dropped,
            "rows_unmatched": self.rows_unmatched,
        }

    def log(self) -> None:
        level = logging.WARNING if self.rows_dropped else logging.INFO
        logger.log(
            level,
            f"{self.stage}: {self.rows_left} -> {self.rows_output} rows "
            f"({self.rows_dropped} dropped, {self.rows_unmatched} unmatched)",
            extra=self.to_dict(),
        )


def distinct_addresses(addresses: Iterable[str]) -> pd.DataFrame:
    """
    Distinct address strings in first-seen order.

    Returns:
        One-column DataFrame (`address`)
    """
    unique = list(dict.fromkeys(addresses))
    return pd.DataFrame({"address": pd.Series(unique, dtype=object)})


def combine_batches(*batches: pd.DataFrame) -> pd.DataFrame:
    """
    Concatenate parsed-result batches into one frame with one row per query.

    When a query appears more than once, a successful row wins over a failed
    one; otherwise the first occurrence is kept.
    """
    frames = [b for b in batches if b is not None and not b.empty]
    if not frames:
        return empty_results()

    combined = pd.concat(frames, ignore_index=True)[RESULT_COLUMNS]
    ranked = combined.assign(_failed=combined["status"] != STATUS_OK)
    ranked = ranked.sort_values("_failed", kind="stable")
    deduped = ranked.drop_duplicates(subset="query", keep="first")

    dropped = len(combined) - len(deduped)
    if dropped:
        logger.info(f"Collapsed {dropped} repeated geocode rows")

    return deduped.sort_index().drop(columns="_failed").reset_index(drop=True)


def build_address_mapping(
    distinct: pd.DataFrame, parsed: pd.DataFrame
) -> tuple[pd.DataFrame, JoinReport]:
    """
    Left-join distinct addresses against parsed results.

    Returns:
        Tuple of (mapping with `address` + geocode columns, join report)
    """
    right = parsed[["query"] + GEOCODE_COLUMNS]
    mapping = distinct.merge(right, how="left", left_on="address", right_on="query")
    mapping = mapping.drop(columns="query")

    report = JoinReport(
        stage="address_mapping",
        rows_left=len(distinct),
        rows_right=len(parsed),
        rows_output=len(mapping),
        rows_unmatched=int((mapping["status"] != STATUS_OK).sum()),
    )
    report.log()
    return mapping, report


def attach_geocodes(
    records: pd.DataFrame, mapping: pd.DataFrame
) -> tuple[pd.DataFrame, JoinReport]:
    """
    Inner-join crime records onto successfully geocoded addresses.

    Returns:
        Tuple of (geocoded records, join report)
    """
    resolved = mapping[mapping["status"] == STATUS_OK][["address"] + GEOCODE_COLUMNS]
    geocoded = records.merge(resolved, how="inner", on="address")

    report = JoinReport(
        stage="attach_geocodes",
        rows_left=len(records),
        rows_right=len(resolved),
        rows_output=len(geocoded),
        rows_dropped=len(records) - len(geocoded),
    )
    report.log()
    return geocoded.reset_index(drop=True), report


def unmatched_records(records: pd.DataFrame, mapping: pd.DataFrame) -> pd.DataFrame:
    """Records whose address has no successful geocode (anti-join)."""
    resolved = set(mapping.loc[mapping["status"] == STATUS_OK, "address"])
    return records[~records["address"].isin(resolved)].copy()


def success_ratio(parsed: pd.DataFrame) -> float:
    """Share of parsed rows with an OK status."""
    if parsed.empty:
        return 0.0
    return float((parsed["status"] == STATUS_OK).mean())
