"""
Charlottesville Crime - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Sample crime records and geocoder payloads
- Mock HTTP session for the geocoding service
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pandas as pd
import pytest

# Set test environment
os.environ["CC_ENVIRONMENT"] = "dev"

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from cville_crime.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def sample_raw_records() -> pd.DataFrame:
    """Raw crime records as they come off the open data portal."""
    return pd.DataFrame(
        {
            "RecordID": [1, 2, 3],
            "Offense": ["Larceny - All Other", "Vandalism", "Assault Simple"],
            "IncidentID": ["202400001", "202400002", "202400003"],
            "BlockNumber": ["100", "0", "200"],
            "StreetName": ["MAIN ST", " MAIN ST ", "PARK ST"],
            "Agency": ["CPD", "CPD", "CPD"],
            "DateReported": ["2024-01-15", "2024-01-15", "2024-01-16"],
        }
    )


def google_payload(
    lat: float, lng: float, formatted: str, location_type: str = "RANGE_INTERPOLATED"
) -> dict[str, Any]:
    """Minimal successful Google Geocoding API response."""
    return {
        "results": [
            {
                "formatted_address": formatted,
                "geometry": {
                    "location": {"lat": lat, "lng": lng},
                    "location_type": location_type,
                },
                "place_id": "abc123",
                "types": ["street_address"],
            }
        ],
        "status": "OK",
    }


ZERO_RESULTS_PAYLOAD = {"results": [], "status": "ZERO_RESULTS"}


@pytest.fixture
def payload_factory() -> Callable[..., dict[str, Any]]:
    """Builder for successful geocoder payloads."""
    return google_payload


@pytest.fixture
def zero_results_payload() -> dict[str, Any]:
    """Response for an address the geocoder could not place."""
    return dict(ZERO_RESULTS_PAYLOAD)


@pytest.fixture
def ok_payload() -> dict[str, Any]:
    """Successful response for 100 Main St."""
    return google_payload(38.0307, -78.4790, "100 Main St, Charlottesville, VA 22902, USA")


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mocked requests.Response objects."""

    def _make(payload: Any = None, status_code: int = 200) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = payload
        response.text = str(payload)
        return response

    return _make


@pytest.fixture
def geocoder_session(make_response) -> Callable[[dict[str, Any]], MagicMock]:
    """
    Mock session whose GET answers from a {address: payload} table.

    Unknown addresses get a ZERO_RESULTS response.
    """

    def _build(answers: dict[str, Any]) -> MagicMock:
        session = MagicMock()

        def _get(url, params=None, timeout=None):
            address = (params or {}).get("address")
            return make_response(answers.get(address, ZERO_RESULTS_PAYLOAD))

        session.get.side_effect = _get
        return session

    return _build


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
