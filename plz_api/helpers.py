"""Shared helpers, constants, and store state for the PLZ Geosearch API."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import HTTPException

from plz_proximity.sinks import JsonLinesSink, MemorySink, ProximitySink

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parent.parent
OUTPUT_DIR = ROOT / "output"
JSON_SNAPSHOT = Path(
    os.environ.get("PLZ_JSON_SNAPSHOT", str(OUTPUT_DIR / "proximity_table.jsonl"))
)

# ---------------------------------------------------------------------------
# Active store (set at startup: PostgresSink or JSON fallback MemorySink)
# ---------------------------------------------------------------------------

_SINK: ProximitySink | None = None


def set_sink(sink: ProximitySink | None) -> None:
    global _SINK  # noqa: PLW0603
    _SINK = sink


def get_sink() -> ProximitySink:
    """The store serving lookups.  503 if none is configured."""
    if _SINK is None:
        raise HTTPException(status_code=503, detail="Proximity table unavailable")
    return _SINK


def load_json_snapshot(path: Path | None = None) -> MemorySink:
    """
    Load the JSON-lines proximity snapshot for fallback mode.

    Returns an empty store when no snapshot exists.
    """
    path = path or JSON_SNAPSHOT
    if not path.exists():
        logger.warning("No JSON snapshot at %s — serving an empty table", path)
        return MemorySink()
    return JsonLinesSink(path).load()


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def filter_nearest(doc: dict[str, Any], max_dist: float) -> dict[str, Any]:
    """
    Copy of ``doc`` with ``nearest`` limited to ``dist <= max_dist``.

    The stored list is already capped at the build threshold, so a larger
    ``max_dist`` returns the full stored list.
    """
    nearest = doc.get("nearest") or []
    return {**doc, "nearest": [e for e in nearest if e["dist"] <= max_dist]}


def iso(dt: datetime | None) -> str | None:
    """Convert datetime to ISO string, or None."""
    return dt.isoformat() if dt else None
