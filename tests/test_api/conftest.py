"""Shared fixtures for the API test suite.

All tests run in JSON fallback mode (no database required).
We build the sample proximity table into a MemorySink, install it as the
active store, and patch db.is_available() → False.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from plz_proximity.builder import ProximityBuilder
from plz_proximity.ingest import read_csv_source
from plz_proximity.normalizer import normalize_records
from plz_proximity.sinks import MemorySink

SAMPLE_CSV = Path(__file__).resolve().parent.parent.parent / "sample-data" / "plz_sample.csv"
SAMPLE_COUNT = 13


def build_sample_sink(threshold_km: float = 200) -> MemorySink:
    sink = MemorySink()
    records = normalize_records(read_csv_source(SAMPLE_CSV))
    ProximityBuilder(records, threshold_km).build(sink)
    return sink


@pytest.fixture()
def sample_sink():
    return build_sample_sink()


@pytest.fixture()
def app(sample_sink):
    """FastAPI app running in JSON fallback mode (no DB)."""
    with (
        patch("plz_api.db.is_available", return_value=False),
        patch("plz_api.db.init_pool", return_value=False),
        patch("plz_api.db.close_pool"),
    ):
        from plz_api import helpers
        from plz_api.app import app as _app

        helpers.set_sink(sample_sink)
        _app.state.server_started_at = datetime(2026, 10, 1, 0, 0, 0, tzinfo=timezone.utc)

        yield _app

        helpers.set_sink(None)


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)
