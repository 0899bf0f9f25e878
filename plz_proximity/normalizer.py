#!/usr/bin/env python3
"""
PLZ Geosearch — Candidate Normalizer

Turns raw ingest rows (string-typed, with extra identifier columns) into
typed ``ZipRecord`` values with an empty neighbor list.  Raw rows are
never modified; every call produces new frozen records.

Malformed input is rejected here so the builder never sees a record whose
coordinates cannot be compared.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

from .distance import Coordinate
from .records import ZipRecord

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """Raised when a raw row cannot be turned into a valid record."""


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------


def parse_coordinate_value(value: Any, field_name: str) -> float:
    """
    Parse a latitude/longitude field into a finite float.

    Accepts numbers and numeric strings, including a decimal comma
    ("52,5200") as exported by some spreadsheet tools.
    """
    if value is None:
        raise MalformedRecordError(f"missing {field_name}")
    if isinstance(value, bool):
        raise MalformedRecordError(f"{field_name} is not a number: {value!r}")
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip()
        if not text:
            raise MalformedRecordError(f"missing {field_name}")
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            parsed = float(text)
        except ValueError:
            raise MalformedRecordError(
                f"{field_name} is not a number: {value!r}"
            ) from None

    if not math.isfinite(parsed):
        raise MalformedRecordError(f"{field_name} is not finite: {value!r}")
    return parsed


def normalize_record(raw: Mapping[str, Any]) -> ZipRecord:
    """
    Convert one raw row into a ``ZipRecord``.

    Only ``zip_code``, ``name``, ``lat`` and ``lon`` are read; every other
    field (``id``, ``loc_id``, ...) is ignored.

    Raises
    ------
    MalformedRecordError
        If the zip code is blank or a coordinate is missing, non-numeric,
        non-finite or off the globe.
    """
    zip_code = str(raw.get("zip_code") or "").strip()
    if not zip_code:
        raise MalformedRecordError("missing zip_code")

    try:
        lat = parse_coordinate_value(raw.get("lat"), "lat")
        lon = parse_coordinate_value(raw.get("lon"), "lon")
    except MalformedRecordError as e:
        raise MalformedRecordError(f"zip_code {zip_code}: {e}") from None

    coordinate = Coordinate(latitude=lat, longitude=lon)
    if not coordinate.is_valid():
        raise MalformedRecordError(
            f"zip_code {zip_code}: coordinate out of range ({lat}, {lon})"
        )

    return ZipRecord(
        zip_code=zip_code,
        name=str(raw.get("name") or "").strip(),
        coordinate=coordinate,
    )


def normalize_records(rows: Iterable[Mapping[str, Any]]) -> tuple[ZipRecord, ...]:
    """
    Normalize all raw rows, preserving input order.

    Every row is kept, including rows that repeat a zip code (one postal
    code can cover several places).  Any malformed row aborts normalization
    with its (1-based) row number in the message.
    """
    records: list[ZipRecord] = []
    for row_num, raw in enumerate(rows, start=1):
        try:
            records.append(normalize_record(raw))
        except MalformedRecordError as e:
            raise MalformedRecordError(f"row {row_num}: {e}") from None

    zip_codes = len({r.zip_code for r in records})
    logger.info("Normalized %d records (%d distinct zip codes)", len(records), zip_codes)
    return tuple(records)
