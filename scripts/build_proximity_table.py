#!/usr/bin/env python3
"""
PLZ Geosearch — Proximity Table Build

Reads the postal-code centroid CSV, precomputes every record's neighbors
within the distance threshold and streams the records into PostgreSQL
(default) or a JSON-lines snapshot (--json-out).

Design:
    - Input is fully validated before the table is reset
    - Upsert per record (ON CONFLICT (zip_code, row_num) DO UPDATE), so re-runs are safe
    - No resume: a failed or interrupted build needs another full rebuild
    - Ctrl-C cancels cleanly between records

Usage:
    python scripts/build_proximity_table.py --input data_setup/data.csv --force
    python scripts/build_proximity_table.py --input sample-data/plz_sample.csv \
        --json-out output/proximity_table.jsonl
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from plz_proximity.builder import BuildCancelled, BuildError
from plz_proximity.config import BuildConfig, ConfigError
from plz_proximity.normalizer import MalformedRecordError
from plz_proximity.pipeline import ensure_table, rebuild_table
from plz_proximity.sinks import JsonLinesSink, SinkError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PLZ Geosearch — build the proximity table",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: PLZ_* environment variables)",
    )
    parser.add_argument("--input", default=None, help="Input CSV or JSON file")
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Neighbor distance threshold in km (default: 200)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild even if the table already has records",
    )
    parser.add_argument("--workers", type=int, default=None, help="Builder threads")
    parser.add_argument(
        "--write-concurrency",
        type=int,
        default=None,
        help="Maximum concurrent inserts",
    )
    parser.add_argument(
        "--json-out",
        default=None,
        help="Write a JSON-lines snapshot instead of PostgreSQL (always rebuilds)",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> BuildConfig:
    base = BuildConfig.from_yaml(args.config) if args.config else BuildConfig.from_env()
    return base.with_overrides(
        input_path=args.input,
        threshold_km=args.threshold,
        force_rebuild=True if args.force else None,
        workers=args.workers,
        write_concurrency=args.write_concurrency,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    logger.info("=" * 60)
    logger.info("PLZ Geosearch — Proximity Table Build")
    logger.info("=" * 60)
    logger.info("  Input:      %s", config.input_path)
    logger.info("  Threshold:  %s km", config.threshold_km)
    logger.info("  Workers:    %d (write concurrency %d)", config.workers, config.write_concurrency)

    cancel = threading.Event()

    def _on_sigint(signum, frame):
        logger.warning("Interrupt received — stopping after in-flight records")
        cancel.set()

    previous_handler = signal.signal(signal.SIGINT, _on_sigint)

    pool_open = False
    try:
        if args.json_out:
            sink = JsonLinesSink(args.json_out)
            result = rebuild_table(sink, config, cancel)
        else:
            from plz_api import db
            from plz_api.sink import PostgresSink

            if not db.init_pool(maxconn=config.write_concurrency + 1):
                logger.error("Database unavailable — nothing built")
                return 1
            pool_open = True
            sink = PostgresSink()
            sink.ensure_schema()
            result = ensure_table(sink, config, cancel)

    except FileNotFoundError as e:
        logger.error("Input file not found: %s", e.filename)
        return 1
    except (MalformedRecordError, ValueError) as e:
        logger.error("Invalid input, table left untouched: %s", e)
        return 1
    except BuildCancelled as e:
        logger.error("%s — run again with --force to rebuild", e)
        return 1
    except (BuildError, SinkError):
        logger.exception("Build failed — run again with --force to rebuild")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if pool_open:
            from plz_api import db

            db.close_pool()

    logger.info("=" * 60)
    if result is None:
        logger.info("Table already populated — nothing to do (use --force to rebuild)")
    else:
        for key, val in result.to_dict().items():
            logger.info("  %-20s %s", key, val)
    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
