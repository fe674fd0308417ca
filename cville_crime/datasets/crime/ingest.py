"""
Charlottesville Crime - Crime Data Ingester

Fetches crime incident reports from the City of Charlottesville Open Data
Portal. The portal publishes the dataset as a GeoJSON feature collection;
only each feature's `properties` are kept and the point geometry is
discarded.

Data Source:
    Charlottesville Police Department Crime Data
    https://opendata.charlottesville.org/datasets/crime-data

Configuration:
    Settings loaded from configs/datasets/crime.yaml

Usage:
    from cville_crime.datasets.crime.ingest import CrimeIngester

    ingester = CrimeIngester()
    result = ingester.run(execution_date="2024-01-15")
    df = ingester.get_data()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from cville_crime.datasets.base import BaseIngester
from cville_crime.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

# =============================================================================
# API Configuration (loaded from crime.yaml)
# =============================================================================
DATASET_CONFIG = get_dataset_config("crime")

API_CONFIG = DATASET_CONFIG.get("api", {})
INGESTION_CONFIG = DATASET_CONFIG.get("ingestion", {})
COLUMN_CONFIG = DATASET_CONFIG.get("columns", {})

PRIMARY_KEY = INGESTION_CONFIG.get("primary_key", "RecordID")
BLOCK_NUMBER_FIELD = COLUMN_CONFIG.get("block_number", "BlockNumber")
STREET_NAME_FIELD = COLUMN_CONFIG.get("street_name", "StreetName")


def features_to_frame(collection: Any) -> pd.DataFrame:
    """
    Extract the attribute table from a GeoJSON feature collection.

    Args:
        collection: Decoded GeoJSON document

    Returns:
        DataFrame with one row per feature, built from `properties`

    Raises:
        ValueError: If the document is not a FeatureCollection
    """
    if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
        raise ValueError("Expected a GeoJSON FeatureCollection")

    features = collection.get("features") or []
    records = [feature.get("properties") or {} for feature in features]
    return pd.DataFrame.from_records(records)


def load_crime_file(path: str | Path) -> pd.DataFrame:
    """Read a previously downloaded crime GeoJSON file."""
    with open(path, encoding="utf-8") as f:
        collection = json.load(f)
    df = features_to_frame(collection)
    logger.info(f"Loaded {len(df)} crime records from {path}")
    return df


class CrimeIngester(BaseIngester):
    """
    Ingester for Charlottesville crime incident data.

    The portal serves a full snapshot; there is no incremental filter.
    """

    def __init__(self, config: Settings | None = None, session: requests.Session | None = None):
        """Initialize crime ingester."""
        super().__init__(config)
        self.source_url = API_CONFIG.get("source_url", self.config.crime.source_url)
        self.timeout = API_CONFIG.get("timeout_seconds", self.config.crime.timeout_seconds)
        self.session = session or requests.Session()

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "crime"

    def get_primary_key(self) -> str:
        """Return the primary key field (from config)."""
        return PRIMARY_KEY

    def get_required_columns(self) -> list[str]:
        """Columns the address builder needs."""
        return [BLOCK_NUMBER_FIELD, STREET_NAME_FIELD]

    def get_api_endpoint(self) -> str:
        """Get the GeoJSON download URL."""
        return self.source_url

    def fetch_data(self) -> pd.DataFrame:
        """
        Download the crime feature collection.

        Returns:
            DataFrame of feature properties
        """
        logger.info(f"Downloading crime data from {self.source_url}")

        response = self.session.get(self.source_url, timeout=self.timeout)
        if response.status_code != 200:
            raise RuntimeError(f"HTTP {response.status_code}: {response.text[:200]}")

        df = features_to_frame(response.json())

        logger.info(
            f"Fetched {len(df)} crime records",
            extra={"rows": len(df), "columns": list(df.columns)},
        )
        return df


# =============================================================================
# Convenience Functions
# =============================================================================


def ingest_crime_data(execution_date: str, config: Settings | None = None) -> pd.DataFrame:
    """
    Download crime data, raising if the ingestion did not succeed.

    Returns the fetched DataFrame.
    """
    ingester = CrimeIngester(config)
    result = ingester.run(execution_date)
    if not result.success:
        raise RuntimeError(f"Crime ingestion failed: {result.error_message}")
    return ingester.get_data()
