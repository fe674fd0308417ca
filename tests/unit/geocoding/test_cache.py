"""
Unit tests for GeocodeCache.
"""

import pandas as pd
import pytest

from cville_crime.geocoding.cache import GeocodeCache
from cville_crime.geocoding.responses import RESULT_COLUMNS, parse_responses

MAIN = "100 MAIN ST Charlottesville VA"
PARK = "200 PARK ST Charlottesville VA"
AVON = "300 AVON ST Charlottesville VA"


@pytest.fixture
def parsed(ok_payload, zero_results_payload):
    return parse_responses([(MAIN, ok_payload), (PARK, zero_results_payload)])


class TestGeocodeCache:
    """Test cases for GeocodeCache."""

    def test_in_memory_cache(self, parsed):
        cache = GeocodeCache()

        added = cache.update(parsed)

        assert added == 1
        assert MAIN in cache
        assert PARK not in cache
        assert cache.save() is None

    def test_only_successes_are_cached(self, parsed):
        """Test failed lookups stay eligible for a retry."""
        cache = GeocodeCache()
        cache.update(parsed)

        assert cache.missing([MAIN, PARK, AVON]) == [PARK, AVON]

    def test_round_trip_through_disk(self, tmp_path, parsed):
        path = tmp_path / "cache" / "geocode_cache.csv"
        cache = GeocodeCache(path)
        cache.update(parsed)
        cache.save()

        reloaded = GeocodeCache(path)

        assert len(reloaded) == 1
        entry = reloaded.get(MAIN)
        assert entry["lat"] == pytest.approx(38.0307)
        assert entry["formatted_address"] == "100 Main St, Charlottesville, VA 22902, USA"
        assert "cached_at" in entry

    def test_missing_preserves_order(self):
        cache = GeocodeCache()
        assert cache.missing([AVON, MAIN, PARK]) == [AVON, MAIN, PARK]

    def test_to_frame_restricted(self, parsed, ok_payload):
        cache = GeocodeCache()
        cache.update(parsed)
        cache.update(parse_responses([(AVON, ok_payload)]))

        df = cache.to_frame([AVON, PARK])

        assert list(df.columns) == RESULT_COLUMNS
        assert df["query"].tolist() == [AVON]

    def test_to_frame_empty(self):
        df = GeocodeCache().to_frame()

        assert df.empty
        assert list(df.columns) == RESULT_COLUMNS

    def test_update_empty_frame(self):
        assert GeocodeCache().update(parse_responses([])) == 0

    def test_later_result_replaces_earlier(self, payload_factory):
        cache = GeocodeCache()
        cache.update(parse_responses([(MAIN, payload_factory(1.0, 2.0, "old"))]))
        cache.update(parse_responses([(MAIN, payload_factory(3.0, 4.0, "new"))]))

        assert cache.get(MAIN)["formatted_address"] == "new"

    def test_load_rejects_unknown_layout(self, tmp_path):
        path = tmp_path / "bad.csv"
        pd.DataFrame({"address": [MAIN]}).to_csv(path, index=False)

        with pytest.raises(ValueError, match="missing columns"):
            GeocodeCache(path)
