"""
Charlottesville Crime - Geocode Cache

Flat CSV of address -> geocode result, keyed by the exact query string.
The file is meant to be committed alongside the processed data so later
runs only query addresses that have not been resolved before.

Only successful lookups are stored; failed addresses are retried on the
next run.

Usage:
    cache = GeocodeCache("data/processed/geocode_cache.csv")
    todo = cache.missing(addresses)
    ...
    cache.update(parsed_df)
    cache.save()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from cville_crime.geocoding.responses import RESULT_COLUMNS, STATUS_OK

logger = logging.getLogger(__name__)

CACHE_COLUMNS = RESULT_COLUMNS + ["cached_at"]


class GeocodeCache:
    """CSV-backed store of successful geocode results."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._entries: dict[str, dict[str, Any]] = {}
        if self.path is not None and self.path.exists():
            self.load()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def load(self) -> None:
        """Read cached rows from disk, replacing in-memory entries."""
        if self.path is None:
            return
        df = pd.read_csv(self.path, dtype={"query": str, "formatted_address": str})
        missing = set(RESULT_COLUMNS) - set(df.columns)
        if missing:
            raise ValueError(f"Cache file {self.path} is missing columns: {sorted(missing)}")

        self._entries = {}
        for record in df.to_dict(orient="records"):
            self._entries[record["query"]] = record
        logger.info(f"Loaded {len(self._entries)} cached geocodes from {self.path}")

    def get(self, address: str) -> dict[str, Any] | None:
        return self._entries.get(address)

    def missing(self, addresses: Iterable[str]) -> list[str]:
        """Addresses not yet resolved, in input order."""
        return [a for a in addresses if a not in self._entries]

    def update(self, results: pd.DataFrame) -> int:
        """
        Add successful rows from a parsed-result frame.

        Returns:
            Number of entries added or replaced
        """
        if results.empty:
            return 0

        ok = results[results["status"] == STATUS_OK]
        stamp = datetime.now(UTC).isoformat()
        for record in ok[RESULT_COLUMNS].to_dict(orient="records"):
            record["cached_at"] = stamp
            self._entries[record["query"]] = record
        return len(ok)

    def to_frame(self, addresses: Iterable[str] | None = None) -> pd.DataFrame:
        """Cached rows as a parsed-result frame, optionally restricted to `addresses`."""
        if addresses is None:
            records = list(self._entries.values())
        else:
            records = [self._entries[a] for a in dict.fromkeys(addresses) if a in self._entries]
        df = pd.DataFrame(records, columns=CACHE_COLUMNS)
        df["lat"] = df["lat"].astype("float64")
        df["lon"] = df["lon"].astype("float64")
        return df[RESULT_COLUMNS]

    def save(self) -> Path | None:
        """Write the cache to disk, sorted by address for stable diffs."""
        if self.path is None:
            return None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(list(self._entries.values()), columns=CACHE_COLUMNS)
        df = df.sort_values("query", kind="stable")
        df.to_csv(self.path, index=False)
        logger.info(f"Saved {len(df)} cached geocodes to {self.path}")
        return self.path
