#!/usr/bin/env python3
"""
PLZ Geosearch — Proximity Builder

For every record, finds all other records within the distance threshold,
orders them by distance and hands the finalized record to a sink.

Strategy:
    1. The normalized records form one immutable, shared tuple
    2. ``nearest_for(i)`` is a pure function of that tuple, so it is safe to call
       from any number of threads at once
    3. Records are emitted one at a time and never kept after the sink has
       them, so memory stays at O(N) records plus the candidates of the
       records currently in flight
    4. With workers > 1, indices are striped across a fixed thread pool and
       concurrent sink writes are capped by a semaphore

Tie-break: records at equal distance keep discovery (input) order.

A zip code listed on several rows appears once per neighbor list, at the
distance of its nearest row.  Rows sharing the origin's zip code are skipped.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Protocol, Sequence

from .distance import DEFAULT_THRESHOLD_KM, distance_km
from .records import NeighborEntry, ZipRecord

logger = logging.getLogger(__name__)

DEFAULT_WRITE_CONCURRENCY = 4
DEFAULT_PROGRESS_EVERY = 100


class RecordSink(Protocol):
    def insert(self, record: ZipRecord) -> None: ...


class BuildError(RuntimeError):
    """The sink failed mid-build.  Only a full reset + rebuild recovers."""

    def __init__(self, message: str, emitted: int, total: int):
        super().__init__(message)
        self.emitted = emitted
        self.total = total


class BuildCancelled(BuildError):
    """The build was cancelled between record completions."""


@dataclass
class BuildResult:
    """Summary of a finished build."""

    total: int
    emitted: int
    neighbor_entries: int
    elapsed_seconds: float

    def to_dict(self) -> dict[str, float | int]:
        return {
            "total": self.total,
            "emitted": self.emitted,
            "neighbor_entries": self.neighbor_entries,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }


# ---------------------------------------------------------------------------
# Per-record computation
# ---------------------------------------------------------------------------


def sort_and_dedup(candidates: list[NeighborEntry]) -> tuple[NeighborEntry, ...]:
    """
    Stable-sort candidates by distance and keep the first entry per zip code.

    ``list.sort`` is stable, so equal distances keep discovery order.
    """
    candidates.sort(key=lambda e: e.dist)
    seen: set[str] = set()
    unique: list[NeighborEntry] = []
    for entry in candidates:
        if entry.zip_code in seen:
            continue
        seen.add(entry.zip_code)
        unique.append(entry)
    return tuple(unique)


class ProximityBuilder:
    """
    Computes and streams neighbor lists for a fixed record set.

    Parameters
    ----------
    records : sequence of ZipRecord
        Normalized records.  Copied into a tuple; never mutated.
    threshold_km : int
        Maximum neighbor distance (inclusive).
    workers : int
        Size of the worker pool.  1 processes records inline in input order.
        Workers are threads: they overlap sink I/O (database round trips),
        but the distance pass is pure Python and holds the GIL, so it does
        not run faster with more workers.
    write_concurrency : int
        Maximum number of ``sink.insert`` calls in flight at once.
    progress_every : int
        Log progress every N emitted records.
    """

    def __init__(
        self,
        records: Sequence[ZipRecord],
        threshold_km: float = DEFAULT_THRESHOLD_KM,
        *,
        workers: int = 1,
        write_concurrency: int = DEFAULT_WRITE_CONCURRENCY,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
    ):
        if threshold_km < 0:
            raise ValueError(f"threshold_km must be >= 0, got {threshold_km}")
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if write_concurrency < 1:
            raise ValueError(f"write_concurrency must be >= 1, got {write_concurrency}")

        self.records: tuple[ZipRecord, ...] = tuple(records)
        self.threshold_km = threshold_km
        self.workers = workers
        self.write_concurrency = write_concurrency
        self.progress_every = max(1, progress_every)

        self._write_slots = threading.Semaphore(write_concurrency)
        self._progress_lock = threading.Lock()
        self._emitted = 0
        self._neighbor_entries = 0

    def nearest_for(self, index: int) -> tuple[NeighborEntry, ...]:
        """Sorted, deduplicated neighbor list for ``records[index]``."""
        origin = self.records[index]
        candidates: list[NeighborEntry] = []

        for j, other in enumerate(self.records):
            if j == index or other.zip_code == origin.zip_code:
                continue
            dist = distance_km(origin.coordinate, other.coordinate)
            if dist <= self.threshold_km:
                candidates.append(NeighborEntry(zip_code=other.zip_code, dist=dist))

        return sort_and_dedup(candidates)

    def finalize(self, index: int) -> ZipRecord:
        """
        Return ``records[index]`` with its neighbor list filled in and
        ``row_num`` set to ``index``.
        """
        return replace(
            self.records[index],
            nearest=self.nearest_for(index),
            row_num=index,
        )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def _emit(self, sink: RecordSink, index: int) -> None:
        record = self.finalize(index)
        with self._write_slots:
            sink.insert(record)

        total = len(self.records)
        with self._progress_lock:
            self._emitted += 1
            self._neighbor_entries += len(record.nearest)
            done = self._emitted
        if done % self.progress_every == 0 or done == total:
            logger.info("%d/%d (%d%%)", done, total, round(done / total * 100))

    def _run_stripe(
        self,
        sink: RecordSink,
        indices: range,
        *stop_events: threading.Event,
    ) -> None:
        for index in indices:
            if any(ev.is_set() for ev in stop_events):
                return
            self._emit(sink, index)

    def build(
        self,
        sink: RecordSink,
        cancel_event: threading.Event | None = None,
    ) -> BuildResult:
        """
        Emit every record to ``sink`` exactly once.

        Raises
        ------
        BuildCancelled
            If ``cancel_event`` was set before all records were emitted.
        BuildError
            If ``sink.insert`` raised; the sink then holds a partial table.
        """
        cancel = cancel_event if cancel_event is not None else threading.Event()
        total = len(self.records)
        self._emitted = 0
        self._neighbor_entries = 0
        t0 = time.monotonic()

        logger.info(
            "Building proximity table: %d records, threshold %s km, %d worker(s)",
            total,
            self.threshold_km,
            self.workers,
        )

        try:
            if self.workers == 1:
                self._run_stripe(sink, range(total), cancel)
            else:
                self._build_parallel(sink, cancel)
        except Exception as e:
            logger.error(
                "Build aborted after %d/%d records — reset and rebuild required: %s",
                self._emitted,
                total,
                e,
            )
            raise BuildError(
                f"sink insert failed after {self._emitted}/{total} records: {e}",
                emitted=self._emitted,
                total=total,
            ) from e

        if self._emitted < total:
            logger.warning(
                "Build cancelled after %d/%d records — reset and rebuild required",
                self._emitted,
                total,
            )
            raise BuildCancelled(
                f"build cancelled after {self._emitted}/{total} records",
                emitted=self._emitted,
                total=total,
            )

        return BuildResult(
            total=total,
            emitted=self._emitted,
            neighbor_entries=self._neighbor_entries,
            elapsed_seconds=time.monotonic() - t0,
        )

    def _build_parallel(self, sink: RecordSink, cancel: threading.Event) -> None:
        total = len(self.records)
        failed = threading.Event()
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [
                pool.submit(
                    self._run_stripe, sink, range(w, total, self.workers), cancel, failed
                )
                for w in range(self.workers)
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    # Other stripes stop at their next record boundary
                    failed.set()
                    raise exc
