"""
Charlottesville Crime - Geocode Response Parsing

Turns raw geocoding responses into flat rows. Every response is first
classified into one of three outcomes:

- GeocodeSuccess: status "OK" with at least one usable result
- ZeroResults: a well-formed response whose status is not "OK"
  (ZERO_RESULTS, OVER_QUERY_LIMIT, REQUEST_DENIED, TIMEOUT, ...)
- MalformedResponse: anything else (not an object, no status, "OK" with
  no usable result)

Each classified response becomes exactly one row keyed by the query
address. Failed lookups carry only the key, the outcome tag and the
formatted-address marker "missing".

Usage:
    from cville_crime.geocoding.responses import parse_response

    row = parse_response("100 AVON ST Charlottesville VA", payload)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MISSING_ADDRESS = "missing"
STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"

RESULT_COLUMNS = [
    "query",
    "status",
    "lat",
    "lon",
    "formatted_address",
    "location_type",
    "outcome",
]


@dataclass(frozen=True)
class GeocodeMatch:
    """The fields kept from one nested result."""

    lat: float
    lon: float
    formatted_address: str | None
    location_type: str | None


@dataclass(frozen=True)
class GeocodeSuccess:
    query: str
    matches: tuple[GeocodeMatch, ...]
    status: str = STATUS_OK
    outcome: str = "success"

    @property
    def best(self) -> GeocodeMatch:
        return self.matches[0]


@dataclass(frozen=True)
class ZeroResults:
    query: str
    status: str
    outcome: str = "zero_results"


@dataclass(frozen=True)
class MalformedResponse:
    query: str
    reason: str
    outcome: str = "malformed"


GeocodeOutcome = GeocodeSuccess | ZeroResults | MalformedResponse


def _extract_match(result: Any) -> GeocodeMatch | None:
    if not isinstance(result, dict):
        return None
    geometry = result.get("geometry")
    if not isinstance(geometry, dict):
        return None
    location = geometry.get("location")
    if not isinstance(location, dict):
        return None
    try:
        lat = float(location["lat"])
        lon = float(location["lng"])
    except (KeyError, TypeError, ValueError):
        return None
    return GeocodeMatch(
        lat=lat,
        lon=lon,
        formatted_address=result.get("formatted_address"),
        location_type=geometry.get("location_type"),
    )


def classify(query: str, payload: Any) -> GeocodeOutcome:
    """Classify one raw response."""
    if not isinstance(payload, dict):
        return MalformedResponse(query, f"expected an object, got {type(payload).__name__}")

    status = payload.get("status")
    if not isinstance(status, str):
        return MalformedResponse(query, "response has no status")

    if status != STATUS_OK:
        return ZeroResults(query, status)

    results = payload.get("results")
    if not isinstance(results, list) or not results:
        return MalformedResponse(query, "OK status without results")

    matches: list[GeocodeMatch] = []
    for result in results:
        match = _extract_match(result)
        # Services occasionally repeat an identical candidate
        if match is not None and match not in matches:
            matches.append(match)

    if not matches:
        return MalformedResponse(query, "OK status without usable results")

    return GeocodeSuccess(query, tuple(matches))


def outcome_to_row(outcome: GeocodeOutcome) -> dict[str, Any]:
    """Flatten a classified response into a single row."""
    if isinstance(outcome, GeocodeSuccess):
        best = outcome.best
        return {
            "query": outcome.query,
            "status": outcome.status,
            "lat": best.lat,
            "lon": best.lon,
            "formatted_address": best.formatted_address,
            "location_type": best.location_type,
            "outcome": outcome.outcome,
        }

    return {
        "query": outcome.query,
        "status": None,
        "lat": np.nan,
        "lon": np.nan,
        "formatted_address": MISSING_ADDRESS,
        "location_type": None,
        "outcome": outcome.outcome,
    }


def parse_response(query: str, payload: Any) -> dict[str, Any]:
    """Classify and flatten one response."""
    outcome = classify(query, payload)
    if isinstance(outcome, MalformedResponse):
        logger.warning(f"Malformed geocode response for '{query}': {outcome.reason}")
    elif isinstance(outcome, ZeroResults) and outcome.status != STATUS_ZERO_RESULTS:
        logger.warning(f"Geocode request for '{query}' failed with status {outcome.status}")
    elif isinstance(outcome, ZeroResults):
        logger.debug(f"No geocode result for '{query}' (status {outcome.status})")
    return outcome_to_row(outcome)


def parse_responses(responses: list[tuple[str, Any]]) -> pd.DataFrame:
    """
    Parse a batch of (query, payload) pairs.

    Returns:
        DataFrame with RESULT_COLUMNS, one row per input pair
    """
    rows = [parse_response(query, payload) for query, payload in responses]
    df = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    df["lat"] = df["lat"].astype("float64")
    df["lon"] = df["lon"].astype("float64")
    return df


def empty_results() -> pd.DataFrame:
    """An empty parsed-result frame with the standard columns."""
    return parse_responses([])
