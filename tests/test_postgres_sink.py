"""Tests for plz_api.sink — PostgreSQL store (driven through a fake connection)."""

from __future__ import annotations

import json
from contextlib import contextmanager

import pytest

from plz_api.sink import PostgresSink
from plz_proximity.records import NeighborEntry, ZipRecord
from plz_proximity.sinks import SinkError

from .conftest import make_record


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), params))
        if self.conn.fail_on and self.conn.fail_on in sql:
            raise RuntimeError("relation is locked")

    def fetchone(self):
        return self.conn.results.pop(0)

    def fetchall(self):
        return self.conn.results.pop(0)


class FakeConn:
    def __init__(self, results=None, fail_on=None):
        self.executed: list[tuple[str, tuple | None]] = []
        self.results = list(results or [])
        self.fail_on = fail_on
        self.opened = 0

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    @contextmanager
    def scope(self):
        self.opened += 1
        yield self


def _sink(conn: FakeConn) -> PostgresSink:
    return PostgresSink(get_conn=conn.scope)


class TestInsert:
    def test_upsert_with_jsonb_neighbors(self):
        conn = FakeConn()
        record = ZipRecord(
            zip_code="10115",
            name="Berlin",
            coordinate=make_record("x", 52.5323, 13.3846).coordinate,
            nearest=(NeighborEntry("10117", 2), NeighborEntry("14467", 26)),
            row_num=7,
        )
        _sink(conn).insert(record)

        sql, params = conn.executed[0]
        assert "INSERT INTO zip_codes" in sql
        assert "ON CONFLICT (zip_code, row_num) DO UPDATE" in sql
        assert params[:5] == ("10115", 7, "Berlin", 52.5323, 13.3846)
        assert json.loads(params[5]) == [
            {"zip_code": "10117", "dist": 2},
            {"zip_code": "14467", "dist": 26},
        ]

    def test_each_insert_uses_its_own_connection_scope(self):
        conn = FakeConn()
        sink = _sink(conn)
        sink.insert(make_record("1", 0.0, 0.0))
        sink.insert(make_record("2", 0.0, 1.0))
        assert conn.opened == 2


class TestCount:
    def test_missing_table_counts_zero(self):
        conn = FakeConn(results=[(None,)])
        assert _sink(conn).count() == 0
        assert len(conn.executed) == 1

    def test_counts_rows(self):
        conn = FakeConn(results=[("zip_codes",), (42,)])
        assert _sink(conn).count() == 42


class TestReset:
    def test_drops_and_recreates(self):
        conn = FakeConn()
        _sink(conn).reset()
        statements = [sql for sql, _ in conn.executed]
        assert statements[0] == "DROP TABLE IF EXISTS zip_codes"
        assert statements[1].startswith("CREATE TABLE IF NOT EXISTS zip_codes")
        assert "PRIMARY KEY (zip_code, row_num)" in statements[1]

    def test_failure_is_raised_not_swallowed(self):
        conn = FakeConn(fail_on="DROP TABLE")
        with pytest.raises(SinkError, match="Could not reset zip_codes"):
            _sink(conn).reset()


class TestIndexesAndQueries:
    def test_create_indexes(self):
        conn = FakeConn()
        _sink(conn).create_indexes()
        assert "USING GIN (to_tsvector('simple', name))" in conn.executed[0][0]

    def test_get_first_row_for_zip(self):
        row = {"zip_code": "10115", "row_num": 0, "name": "Berlin", "lat": 52.5, "lon": 13.4, "nearest": []}
        conn = FakeConn(results=[row])
        assert _sink(conn).get("10115") == row

        sql, params = conn.executed[0]
        assert "ORDER BY row_num LIMIT 1" in sql
        assert params == ("10115",)

    def test_get_missing(self):
        conn = FakeConn(results=[None])
        assert _sink(conn).get("99999") is None

    def test_search_ranked_and_limited(self):
        rows = [{"zip_code": "10115", "name": "Berlin", "lat": 52.5, "lon": 13.4, "score": 0.0607927}]
        conn = FakeConn(results=[rows])
        hits = _sink(conn).search("Berlin", 5)

        sql, params = conn.executed[0]
        assert "ts_rank" in sql
        assert "ORDER BY score DESC" in sql
        assert params == ("Berlin", 5)
        assert hits == [{"zip_code": "10115", "name": "Berlin", "lat": 52.5, "lon": 13.4, "score": 0.0608}]
