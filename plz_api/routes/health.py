"""Health check endpoint."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from .. import db
from ..helpers import get_sink, iso

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/health")
def health(request: Request):
    """Health check — reports mode, record count, version, store latency. Always open."""
    mode = "database" if db.is_available() else "json_fallback"
    count = 0
    store_ok = False
    latency_ms: float | None = None

    try:
        t0 = time.monotonic()
        count = get_sink().count()
        latency_ms = round((time.monotonic() - t0) * 1000, 1)
        store_ok = True
    except Exception as e:
        logger.warning("Health check: store unavailable: %s", e)

    server_started_at = request.app.state.server_started_at
    uptime_seconds = round((datetime.now(timezone.utc) - server_started_at).total_seconds())

    healthy = store_ok and mode == "database"

    return JSONResponse(
        status_code=200 if store_ok else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "mode": mode,
            "record_count": count,
            "version": request.app.version,
            "database_connected": db.is_available(),
            "started_at": iso(server_started_at),
            "uptime_seconds": uptime_seconds,
            "checks": {
                "store": {
                    "status": "up" if store_ok else "down",
                    "latency_ms": latency_ms,
                },
            },
        },
    )
