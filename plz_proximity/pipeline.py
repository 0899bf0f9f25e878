"""
PLZ Geosearch — Table Bootstrap

Decides whether the proximity table needs a (re)build and runs it:
reset → read input → normalize → build → index.

There is no partial resume: a failed or cancelled build leaves some records
in the store and must be followed by another full rebuild.
"""

from __future__ import annotations

import logging
import threading

from .builder import BuildResult, ProximityBuilder
from .config import BuildConfig
from .ingest import read_source_file
from .normalizer import normalize_records
from .sinks import ProximitySink

logger = logging.getLogger(__name__)


def rebuild_table(
    sink: ProximitySink,
    config: BuildConfig,
    cancel_event: threading.Event | None = None,
) -> BuildResult:
    """Clear the store and rebuild the full proximity table from the input file."""
    logger.info("Setting up proximity table from %s", config.input_path)

    # Validate the whole input before touching the store
    rows = read_source_file(config.input_path)
    records = normalize_records(rows)
    del rows

    sink.reset()

    builder = ProximityBuilder(
        records,
        config.threshold_km,
        workers=config.workers,
        write_concurrency=config.write_concurrency,
        progress_every=config.progress_every,
    )
    result = builder.build(sink, cancel_event)

    sink.create_indexes()
    logger.info(
        "Inserted %d entities (%d neighbor entries) in %.1f seconds",
        sink.count(),
        result.neighbor_entries,
        result.elapsed_seconds,
    )
    return result


def ensure_table(
    sink: ProximitySink,
    config: BuildConfig,
    cancel_event: threading.Event | None = None,
) -> BuildResult | None:
    """
    Build the proximity table if it is empty or a rebuild is forced.

    Returns the BuildResult, or None when the existing table was kept.
    """
    count = sink.count()

    if count > 0 and not config.force_rebuild:
        logger.info("Found %d entities", count)
        return None

    if config.force_rebuild:
        logger.info("Recreating the datasets")
    else:
        logger.info("No datasets")
    return rebuild_table(sink, config, cancel_event)
