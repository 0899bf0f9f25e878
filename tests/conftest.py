"""Shared fixtures: sample postal-code records."""

from __future__ import annotations

from pathlib import Path

import pytest

from plz_proximity.distance import Coordinate
from plz_proximity.records import ZipRecord

ROOT = Path(__file__).resolve().parent.parent
SAMPLE_CSV = ROOT / "sample-data" / "plz_sample.csv"


def make_record(zip_code: str, lat: float, lon: float, name: str = "") -> ZipRecord:
    return ZipRecord(zip_code=zip_code, name=name, coordinate=Coordinate(lat, lon))


@pytest.fixture()
def sample_csv() -> Path:
    """13 German postal-code centroids (id, loc_id, zip_code, name, lat, lon)."""
    return SAMPLE_CSV


@pytest.fixture()
def abc_records() -> list[ZipRecord]:
    """Three points on the equator, 1° and 3° of longitude apart."""
    return [
        make_record("00000", 0.0, 0.0, "A"),
        make_record("00001", 0.0, 1.0, "B"),
        make_record("00002", 0.0, 3.0, "C"),
    ]


class RecordingSink:
    """Collects inserted records in call order."""

    def __init__(self):
        self.records: list[ZipRecord] = []

    def insert(self, record: ZipRecord) -> None:
        self.records.append(record)

    def by_zip(self) -> dict[str, ZipRecord]:
        return {r.zip_code: r for r in self.records}
