"""Raw input readers for postal-code centroid files."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("zip_code", "name", "lat", "lon")


def read_csv_source(file_path: str | Path) -> list[dict[str, Any]]:
    """
    Read a CSV source file and return a list of row dicts.

    The header must contain at least ``zip_code``, ``name``, ``lat`` and
    ``lon``; other columns are passed through and dropped later by the
    normalizer.
    """
    records = []
    with open(file_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{file_path}: missing required column(s): {', '.join(missing)}")
        for row in reader:
            # Convert empty strings to None for cleaner downstream handling
            cleaned = {
                k: (v.strip() or None) if isinstance(v, str) else v
                for k, v in row.items()
            }
            records.append(cleaned)
    logger.info("Parsed %d entities from %s", len(records), file_path)
    return records


def read_json_source(file_path: str | Path) -> list[dict[str, Any]]:
    """Read a JSON source file (bare list or ``{"records": [...]}``)."""
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        records = data.get("records", [])
    else:
        raise ValueError(f"Unexpected JSON structure in {file_path}")
    logger.info("Parsed %d entities from %s", len(records), file_path)
    return records


def read_source_file(file_path: str | Path) -> list[dict[str, Any]]:
    """Dispatch to the appropriate reader based on file extension."""
    ext = Path(file_path).suffix.lower()
    if ext == ".csv":
        return read_csv_source(file_path)
    elif ext == ".json":
        return read_json_source(file_path)
    else:
        raise ValueError(f"Unsupported file format: {ext}. Supported: .csv, .json")
