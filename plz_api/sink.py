"""
PLZ Geosearch — PostgreSQL Proximity Store

Table layout:
    zip_codes(zip_code text, row_num integer, name text,
              lat double precision, lon double precision, nearest jsonb,
              PRIMARY KEY (zip_code, row_num))

Indexes (built once after a full insert pass):
    - primary key (zip_code, row_num) → point lookup, first row per zip
    - GIN on to_tsvector(name)        → ranked text search

Every statement runs in its own pooled connection scope (``db.get_conn``),
so inserts from concurrent builder threads never share a connection.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from plz_proximity.records import ZipRecord
from plz_proximity.search import DEFAULT_SEARCH_LIMIT
from plz_proximity.sinks import SinkError

from . import db
from .db import extras

logger = logging.getLogger(__name__)

TABLE = "zip_codes"

# 'simple' keeps place names unstemmed ("Frankfurt am Main" stays searchable as typed)
TEXT_SEARCH_CONFIG = "simple"

_CREATE_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE} (
        zip_code text NOT NULL,
        row_num  integer NOT NULL,
        name     text NOT NULL DEFAULT '',
        lat      double precision NOT NULL,
        lon      double precision NOT NULL,
        nearest  jsonb NOT NULL DEFAULT '[]'::jsonb,
        PRIMARY KEY (zip_code, row_num)
    )
"""

_CREATE_TEXT_INDEX_SQL = f"""
    CREATE INDEX IF NOT EXISTS {TABLE}_name_fts
    ON {TABLE} USING GIN (to_tsvector('{TEXT_SEARCH_CONFIG}', name))
"""

_UPSERT_SQL = f"""
    INSERT INTO {TABLE} (zip_code, row_num, name, lat, lon, nearest)
    VALUES (%s, %s, %s, %s, %s, %s::jsonb)
    ON CONFLICT (zip_code, row_num) DO UPDATE SET
        name = EXCLUDED.name,
        lat = EXCLUDED.lat,
        lon = EXCLUDED.lon,
        nearest = EXCLUDED.nearest
"""

_SEARCH_SQL = f"""
    SELECT zip_code, row_num, name, lat, lon,
           ts_rank(to_tsvector('{TEXT_SEARCH_CONFIG}', name), query) AS score
    FROM {TABLE}, plainto_tsquery('{TEXT_SEARCH_CONFIG}', %s) AS query
    WHERE to_tsvector('{TEXT_SEARCH_CONFIG}', name) @@ query
    ORDER BY score DESC, row_num
    LIMIT %s
"""

_GET_SQL = f"""
    SELECT zip_code, row_num, name, lat, lon, nearest
    FROM {TABLE}
    WHERE zip_code = %s
    ORDER BY row_num
    LIMIT 1
"""


class PostgresSink:
    """
    Proximity store backed by PostgreSQL.

    ``get_conn`` is the scoped connection factory (defaults to the shared
    pool in ``plz_api.db``).
    """

    def __init__(self, get_conn: Callable[[], Any] = db.get_conn):
        self._get_conn = get_conn

    def ensure_schema(self) -> None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(_CREATE_TABLE_SQL)

    def insert(self, record: ZipRecord) -> None:
        nearest = json.dumps([n.to_dict() for n in record.nearest])
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    _UPSERT_SQL,
                    (
                        record.zip_code,
                        record.row_num,
                        record.name,
                        record.coordinate.latitude,
                        record.coordinate.longitude,
                        nearest,
                    ),
                )

    def count(self) -> int:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass(%s)", (TABLE,))
                if cur.fetchone()[0] is None:
                    return 0
                cur.execute(f"SELECT count(*) FROM {TABLE}")
                return cur.fetchone()[0]

    def reset(self) -> None:
        try:
            with self._get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"DROP TABLE IF EXISTS {TABLE}")
                    cur.execute(_CREATE_TABLE_SQL)
        except Exception as e:
            raise SinkError(f"Could not reset {TABLE}: {e}") from e
        logger.info("Table %s reset", TABLE)

    def create_indexes(self) -> None:
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(_CREATE_TEXT_INDEX_SQL)
                cur.execute(f"ANALYZE {TABLE}")
        logger.info("Indexes created on %s", TABLE)

    def get(self, zip_code: str) -> dict[str, Any] | None:
        with self._get_conn() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_GET_SQL, (zip_code,))
                row = cur.fetchone()
        return dict(row) if row else None

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict[str, Any]]:
        with self._get_conn() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(_SEARCH_SQL, (query, limit))
                rows = cur.fetchall()
        return [dict(r, score=round(float(r["score"]), 4)) for r in rows]
