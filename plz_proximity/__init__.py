"""PLZ Geosearch — Proximity Precomputation."""

from .distance import (
    Coordinate,
    distance_km,
    equirectangular_km,
    round_km,
)
from .records import NeighborEntry, ZipRecord
from .normalizer import (
    MalformedRecordError,
    normalize_record,
    normalize_records,
)
from .builder import (
    BuildCancelled,
    BuildError,
    BuildResult,
    ProximityBuilder,
)
from .config import BuildConfig, ConfigError
from .sinks import JsonLinesSink, MemorySink, ProximitySink, SinkError
from .pipeline import ensure_table, rebuild_table

__all__ = [
    "Coordinate",
    "distance_km",
    "equirectangular_km",
    "round_km",
    "NeighborEntry",
    "ZipRecord",
    "MalformedRecordError",
    "normalize_record",
    "normalize_records",
    "BuildCancelled",
    "BuildError",
    "BuildResult",
    "ProximityBuilder",
    "BuildConfig",
    "ConfigError",
    "JsonLinesSink",
    "MemorySink",
    "ProximitySink",
    "SinkError",
    "ensure_table",
    "rebuild_table",
]
