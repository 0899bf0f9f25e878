"""
PLZ Geosearch — Record Stores

The builder streams finalized records into a store; the lookup API reads
them back.  This module defines the store contract and two file/memory
implementations.  The PostgreSQL store lives in ``plz_api.sink``.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Protocol

from .records import ZipRecord
from .search import DEFAULT_SEARCH_LIMIT, rank_by_name

logger = logging.getLogger(__name__)


class SinkError(RuntimeError):
    """A store operation failed."""


class ProximitySink(Protocol):
    """Contract the build pipeline and the lookup API rely on."""

    def insert(self, record: ZipRecord) -> None:
        """Store one finalized record (upsert by ``(zip_code, row_num)``)."""

    def count(self) -> int:
        """Number of stored records (rows, not distinct zip codes)."""

    def reset(self) -> None:
        """Remove all stored records.  Raises SinkError on failure."""

    def create_indexes(self) -> None:
        """Build the zip_code point index and the name text index."""

    def get(self, zip_code: str) -> dict[str, Any] | None:
        """Stored document for ``zip_code`` (lowest ``row_num``), or None."""

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict[str, Any]]:
        """Documents ranked by name relevance, without ``nearest``."""


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemorySink:
    """
    Thread-safe dict-backed store.

    Documents are grouped by zip code, then by ``row_num``.  Seeding with
    ``documents`` behaves like inserting them in order, so a later document
    for the same record replaces an earlier one.
    """

    def __init__(self, documents: Iterable[dict[str, Any]] = ()):
        self._lock = threading.Lock()
        self._docs: dict[str, dict[int, dict[str, Any]]] = {}
        for doc in documents:
            self.insert(ZipRecord.from_document(doc))

    def insert(self, record: ZipRecord) -> None:
        doc = record.to_document()
        with self._lock:
            self._docs.setdefault(record.zip_code, {})[record.row_num] = doc

    def count(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._docs.values())

    def reset(self) -> None:
        with self._lock:
            self._docs.clear()

    def create_indexes(self) -> None:
        # The dict is the point index; name search scans
        return None

    def get(self, zip_code: str) -> dict[str, Any] | None:
        with self._lock:
            rows = self._docs.get(zip_code)
            if not rows:
                return None
            doc = rows[min(rows)]
        return dict(doc, nearest=list(doc.get("nearest") or []))

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict[str, Any]]:
        return rank_by_name(query, self.documents(), limit)

    def documents(self) -> list[dict[str, Any]]:
        """Snapshot of all stored documents in ``row_num`` order."""
        with self._lock:
            docs = [doc for rows in self._docs.values() for doc in rows.values()]
        return sorted(docs, key=lambda d: d["row_num"])


# ---------------------------------------------------------------------------
# JSON-lines snapshot
# ---------------------------------------------------------------------------


class JsonLinesSink:
    """
    JSON-lines file: one document per line.

    ``insert`` only appends.  Reads replay the file in order, so when a
    record was written twice the later line wins, as with an upsert.

    Used to export a proximity table without a database and to seed the
    API's JSON fallback mode.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def insert(self, record: ZipRecord) -> None:
        line = json.dumps(record.to_document(), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def count(self) -> int:
        if not self.path.exists():
            return 0
        return self.load().count()

    def reset(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                self.path.write_text("", encoding="utf-8")
        except OSError as e:
            raise SinkError(f"Could not reset {self.path}: {e}") from e

    def create_indexes(self) -> None:
        return None

    def load(self) -> MemorySink:
        """Replay the snapshot into a MemorySink."""
        sink = MemorySink()
        with self._lock:
            with open(self.path, "r", encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        sink.insert(ZipRecord.from_document(json.loads(line)))
        logger.info("Loaded %d records from %s", sink.count(), self.path)
        return sink

    def get(self, zip_code: str) -> dict[str, Any] | None:
        return self.load().get(zip_code)

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict[str, Any]]:
        return self.load().search(query, limit)
