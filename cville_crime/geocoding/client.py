"""
Charlottesville Crime - Geocode Client

Sends one request per distinct address to the Google Geocoding API and keeps
the full JSON response. Requests are sequential and counted against the
daily quota; addresses already present in the geocode cache are never sent.

Failure handling:
    - A non-OK status from the service is data, not an error. It is parsed
      into a placeholder row downstream.
    - A request timeout is recorded as a response with status "TIMEOUT"
      and handled the same way.
    - Other transport failures (connection errors, non-200 HTTP responses,
      bodies that are not JSON) raise GeocodingTransportError.

Usage:
    from cville_crime.geocoding.client import GeocodeClient

    client = GeocodeClient()
    run = client.geocode_addresses(["100 AVON ST Charlottesville VA"])
    run.results  # parsed rows, one per address
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import pandas as pd
import requests

from cville_crime.geocoding.cache import GeocodeCache
from cville_crime.geocoding.quota import QuotaScheduler
from cville_crime.geocoding.responses import (
    RESULT_COLUMNS,
    STATUS_OK,
    STATUS_OVER_QUERY_LIMIT,
    empty_results,
    parse_responses,
)
from cville_crime.shared.config import Settings, get_config

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = {"google"}
TIMEOUT_STATUS = "TIMEOUT"


class GeocodingTransportError(RuntimeError):
    """The geocoding service could not be reached or returned an unusable reply."""


@dataclass(frozen=True)
class RawResponse:
    """A query address and the response body returned for it."""

    query: str
    payload: Any


@dataclass
class GeocodeRun:
    """Outcome of geocoding a list of distinct addresses."""

    results: pd.DataFrame
    batches: list[pd.DataFrame] = field(default_factory=list)
    addresses_total: int = 0
    addresses_cached: int = 0
    requests_sent: int = 0
    successes: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert run statistics to a dictionary for logging."""
        return {
            "addresses_total": self.addresses_total,
            "addresses_cached": self.addresses_cached,
            "requests_sent": self.requests_sent,
            "batches": len(self.batches),
            "successes": self.successes,
        }


class GeocodeClient:
    """
    Sequential geocoding client.

    Args:
        config: Configuration object (uses default if not provided)
        session: HTTP session to use
        cache: Cache consulted before querying and updated afterwards
        scheduler: Quota scheduler; built from config when not given
        api_key: Overrides the GOOGLE_MAPS_API_KEY setting
    """

    def __init__(
        self,
        config: Settings | None = None,
        session: requests.Session | None = None,
        cache: GeocodeCache | None = None,
        scheduler: QuotaScheduler | None = None,
        api_key: str | None = None,
    ):
        self.config = config or get_config()
        settings = self.config.geocoding

        if settings.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported geocoding provider: {settings.provider}. "
                f"Must be one of: {SUPPORTED_PROVIDERS}"
            )

        self.base_url = settings.base_url
        self.timeout = settings.timeout_seconds
        self.request_interval = settings.request_interval_seconds
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else GeocodeCache()
        self.scheduler = scheduler or QuotaScheduler(
            daily_limit=settings.daily_limit,
            batch_size=settings.batch_size,
            policy=settings.on_quota_exhausted,
        )
        self.api_key = (
            api_key or self.config.google_maps_api_key or os.getenv("GOOGLE_MAPS_API_KEY")
        )

        if not self.api_key:
            logger.warning("No Google Maps API key configured; using the unauthenticated tier")

    def request(self, address: str) -> Any:
        """
        Send one geocoding request.

        Args:
            address: Address string to resolve

        Returns:
            Decoded JSON body

        Raises:
            requests.Timeout: If the service does not answer in time
            GeocodingTransportError: On any other transport failure
        """
        params = {"address": address}
        if self.api_key:
            params["key"] = self.api_key

        self.scheduler.acquire()
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.Timeout:
            raise
        except requests.RequestException as e:
            raise GeocodingTransportError(f"Request for '{address}' failed: {e}") from e

        if response.status_code != 200:
            raise GeocodingTransportError(
                f"HTTP {response.status_code} for '{address}': {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise GeocodingTransportError(f"Response for '{address}' is not JSON") from e

    def geocode(self, address: str) -> RawResponse:
        """Geocode one address, recording a timeout as a TIMEOUT status."""
        try:
            payload = self.request(address)
        except requests.Timeout:
            logger.warning(f"Geocoding timed out after {self.timeout}s for '{address}'")
            payload = {"status": TIMEOUT_STATUS, "results": []}
        return RawResponse(address, payload)

    def iter_geocode(self, addresses: list[str]) -> Iterator[RawResponse]:
        """
        Geocode addresses one at a time, yielding each response as it arrives.

        An OVER_QUERY_LIMIT reply marks the scheduler's allowance as used up,
        so the next request fails or pauses according to the quota policy.
        """
        for i, address in enumerate(addresses):
            if i and self.request_interval:
                time.sleep(self.request_interval)
            response = self.geocode(address)
            if isinstance(response.payload, dict) and (
                response.payload.get("status") == STATUS_OVER_QUERY_LIMIT
            ):
                self.scheduler.exhaust()
            yield response

    def geocode_batch(self, addresses: list[str]) -> list[RawResponse]:
        """Geocode every address in `addresses`, one request each."""
        return list(self.iter_geocode(addresses))

    def geocode_addresses(self, addresses: list[str]) -> GeocodeRun:
        """
        Resolve distinct addresses, using the cache where possible.

        New lookups are sent in batches of the scheduler's batch size; each
        batch is parsed and written to the cache before the next one starts.
        If a batch is interrupted (quota exhausted, transport failure) the
        responses already received are still written to the cache before the
        error propagates.

        Returns:
            GeocodeRun with one parsed row per distinct input address
        """
        distinct = list(dict.fromkeys(addresses))
        todo = self.cache.missing(distinct)
        cached = self.cache.to_frame(distinct)

        logger.info(
            f"Geocoding {len(todo)} of {len(distinct)} addresses "
            f"({len(cached)} cached, {self.scheduler.remaining} requests left today)",
            extra={"addresses": len(distinct), "to_query": len(todo), "cached": len(cached)},
        )

        if not self.scheduler.check_capacity(len(todo)):
            logger.warning(
                f"{len(todo)} lookups exceed the {self.scheduler.remaining} requests "
                f"remaining today (policy: {self.scheduler.policy})"
            )

        batches: list[pd.DataFrame] = []
        requests_sent = 0
        for number, batch in enumerate(self.scheduler.batches(todo), start=1):
            logger.info(f"Sending batch {number} ({len(batch)} addresses)")
            responses: list[RawResponse] = []
            try:
                for response in self.iter_geocode(batch):
                    responses.append(response)
            finally:
                requests_sent += len(responses)
                if responses:
                    parsed = parse_responses([(r.query, r.payload) for r in responses])
                    self.cache.update(parsed)
                    batches.append(parsed)
                if len(responses) < len(batch):
                    logger.warning(
                        f"Batch {number} interrupted after {len(responses)} of "
                        f"{len(batch)} lookups; received results were cached"
                    )

        frames = ([cached] if not cached.empty else []) + batches
        results = pd.concat(frames, ignore_index=True) if frames else empty_results()
        results = results[RESULT_COLUMNS]

        run = GeocodeRun(
            results=results,
            batches=batches,
            addresses_total=len(distinct),
            addresses_cached=len(cached),
            requests_sent=requests_sent,
            successes=int((results["status"] == STATUS_OK).sum()),
        )
        logger.info("Geocoding complete", extra=run.to_dict())
        return run
