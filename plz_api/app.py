#!/usr/bin/env python3
"""
PLZ Geosearch — Lookup API

Dual-mode FastAPI server:
  • Database mode — serves the proximity table from PostgreSQL; on startup
    builds the table when it is empty or PLZ_FORCE_RECREATE is set
  • JSON fallback — serves a JSON-lines snapshot when the DB is unavailable

Usage:
    uvicorn plz_api.app:app --reload --port 8080
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plz_proximity.config import BuildConfig
from plz_proximity.pipeline import ensure_table

from . import db
from .helpers import load_json_snapshot, set_sink
from .routes import health, zips
from .sink import PostgresSink

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)

BUILD_ON_STARTUP = os.environ.get("PLZ_BUILD_ON_STARTUP", "true").strip().lower() in (
    "1",
    "true",
    "yes",
    "on",
)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="PLZ Geosearch",
    version="1.0.0",
    description="Nearby postal codes and place-name search over a precomputed proximity table",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Health first: "/api/health" would otherwise match "/{zip_code}/{rng}"
app.include_router(health.router)
app.include_router(zips.router)

app.state.server_started_at = datetime.now(timezone.utc)


@app.on_event("startup")
async def startup():
    app.state.server_started_at = datetime.now(timezone.utc)
    config = BuildConfig.from_env()

    # Pool must cover every concurrent builder insert plus request handlers
    if db.init_pool(maxconn=config.write_concurrency + 4):
        logger.info("Running in DATABASE mode")
        sink = PostgresSink()
        sink.ensure_schema()
        if BUILD_ON_STARTUP:
            ensure_table(sink, config)
        set_sink(sink)
    else:
        logger.info("Running in JSON FALLBACK mode")
        set_sink(load_json_snapshot())


@app.on_event("shutdown")
async def shutdown():
    set_sink(None)
    db.close_pool()
