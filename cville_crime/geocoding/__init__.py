"""
Charlottesville Crime - Geocoding

Components:
    - GeocodeClient: Sequential, quota-aware Google Geocoding client
    - QuotaScheduler: Daily request counter and batch splitter
    - GeocodeCache: CSV store of resolved addresses
    - parse_response / classify: Raw response -> flat row
"""

from cville_crime.geocoding.cache import GeocodeCache
from cville_crime.geocoding.client import (
    GeocodeClient,
    GeocodeRun,
    GeocodingTransportError,
    RawResponse,
)
from cville_crime.geocoding.quota import QuotaExceededError, QuotaScheduler
from cville_crime.geocoding.responses import (
    MISSING_ADDRESS,
    RESULT_COLUMNS,
    GeocodeSuccess,
    MalformedResponse,
    ZeroResults,
    classify,
    parse_response,
    parse_responses,
)

__all__ = [
    "GeocodeCache",
    "GeocodeClient",
    "GeocodeRun",
    "GeocodingTransportError",
    "RawResponse",
    "QuotaExceededError",
    "QuotaScheduler",
    "MISSING_ADDRESS",
    "RESULT_COLUMNS",
    "GeocodeSuccess",
    "MalformedResponse",
    "ZeroResults",
    "classify",
    "parse_response",
    "parse_responses",
]
