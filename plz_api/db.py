"""
PLZ Geosearch — Database Connection Module

Provides a thread-safe connection pool using psycopg2. Configuration
via environment variables with local-development defaults.

When the database is unavailable, the API falls back to serving the
proximity table from a JSON-lines snapshot.

Usage:
    from . import db

    if db.init_pool():
        with db.get_conn() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute("SELECT count(*) FROM zip_codes")
                print(cur.fetchone()["count"])
"""

from __future__ import annotations

import logging
import os

from psycopg2 import pool, extras  # noqa: F401, extras re-exported for callers

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration (env vars with local defaults)
# ---------------------------------------------------------------------------

DB_CONFIG = {
    "host": os.environ.get("PLZ_DB_HOST", "localhost"),
    "port": int(os.environ.get("PLZ_DB_PORT", "5432")),
    "dbname": os.environ.get("PLZ_DB_NAME", "plz_geosearch"),
    "user": os.environ.get("PLZ_DB_USER", "plz"),
    "password": os.environ.get("PLZ_DB_PASSWORD", "plz_local_dev"),
    "connect_timeout": int(os.environ.get("PLZ_DB_CONNECT_TIMEOUT", "10")),
}

_pool: pool.ThreadedConnectionPool | None = None


# ---------------------------------------------------------------------------
# Pool lifecycle
# ---------------------------------------------------------------------------


def init_pool(minconn: int = 1, maxconn: int = 10) -> bool:
    """
    Initialize the connection pool.

    Returns True if the database is reachable and the pool is ready.
    Returns False on any failure — the API should fall back to JSON mode.
    """
    global _pool
    try:
        _pool = pool.ThreadedConnectionPool(minconn, maxconn, **DB_CONFIG)
        conn = _pool.getconn()
        cur = conn.cursor()
        cur.execute("SELECT 1")
        cur.close()
        _pool.putconn(conn)
        logger.info(
            "Database pool initialized (%s@%s:%s/%s, max %d connections)",
            DB_CONFIG["user"],
            DB_CONFIG["host"],
            DB_CONFIG["port"],
            DB_CONFIG["dbname"],
            maxconn,
        )
        return True
    except Exception as e:
        logger.warning("Database unavailable: %s", e)
        if _pool is not None:
            try:
                _pool.closeall()
            except Exception:
                logger.debug("Ignoring error while closing half-open pool", exc_info=True)
        _pool = None
        return False


def close_pool() -> None:
    """Close all pool connections. Called at shutdown."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database pool closed.")


def is_available() -> bool:
    """Check whether the database connection pool is active."""
    return _pool is not None


# ---------------------------------------------------------------------------
# Connection context manager
# ---------------------------------------------------------------------------


class get_conn:
    """
    Context manager that checks out a connection from the pool.

    Commits on clean exit, rolls back on exception, always returns the
    connection to the pool.

    Usage::

        with db.get_conn() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute("SELECT ...")
                rows = cur.fetchall()
    """

    def __enter__(self):
        if _pool is None:
            raise RuntimeError("Database pool not initialized")
        self.pool = _pool
        self.conn = self.pool.getconn()
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                self.conn.rollback()
            else:
                self.conn.commit()
        finally:
            # Broken connections are discarded rather than reused
            self.pool.putconn(self.conn, close=bool(self.conn.closed))
        return False  # don't suppress exceptions
