"""
PLZ Geosearch — Build Configuration

Typed, validated settings for a proximity build.  Loaded once at startup
from environment variables or a YAML file.

Recognized options (env var → field):
    PLZ_INPUT_DATA          input_path         CSV file to ingest
    PLZ_MAX_DIST_KM         threshold_km       neighbor cutoff in km
    PLZ_FORCE_RECREATE      force_rebuild      rebuild even if the table has rows
    PLZ_WORKERS             workers            builder thread pool size
    PLZ_WRITE_CONCURRENCY   write_concurrency  max concurrent sink inserts
    PLZ_PROGRESS_EVERY      progress_every     progress log interval
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .builder import DEFAULT_PROGRESS_EVERY, DEFAULT_WRITE_CONCURRENCY
from .distance import DEFAULT_THRESHOLD_KM

DEFAULT_INPUT_PATH = "data_setup/data.csv"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

_ENV_KEYS = {
    "input_path": "PLZ_INPUT_DATA",
    "threshold_km": "PLZ_MAX_DIST_KM",
    "force_rebuild": "PLZ_FORCE_RECREATE",
    "workers": "PLZ_WORKERS",
    "write_concurrency": "PLZ_WRITE_CONCURRENCY",
    "progress_every": "PLZ_PROGRESS_EVERY",
}


class ConfigError(ValueError):
    """Invalid or unrecognized configuration."""


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean; got {value!r}")


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer; got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer; got {value!r}") from None


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number; got {value!r}") from None


@dataclass(frozen=True)
class BuildConfig:
    """Settings for one proximity build."""

    input_path: Path = Path(DEFAULT_INPUT_PATH)
    threshold_km: float = DEFAULT_THRESHOLD_KM
    force_rebuild: bool = False
    workers: int = 1
    write_concurrency: int = DEFAULT_WRITE_CONCURRENCY
    progress_every: int = DEFAULT_PROGRESS_EVERY

    def validate(self) -> "BuildConfig":
        """Check ranges; returns self so calls can be chained."""
        if self.threshold_km <= 0:
            raise ConfigError(f"threshold_km must be > 0; got {self.threshold_km}")
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1; got {self.workers}")
        if self.write_concurrency < 1:
            raise ConfigError(
                f"write_concurrency must be >= 1; got {self.write_concurrency}"
            )
        if self.progress_every < 1:
            raise ConfigError(f"progress_every must be >= 1; got {self.progress_every}")
        return self

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "BuildConfig":
        """Build from a plain mapping; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigError(f"Unrecognized config option(s): {', '.join(unknown)}")

        values: dict[str, Any] = {}
        if "input_path" in raw:
            values["input_path"] = Path(str(raw["input_path"]))
        if "threshold_km" in raw:
            values["threshold_km"] = _parse_float("threshold_km", raw["threshold_km"])
        if "force_rebuild" in raw:
            values["force_rebuild"] = _parse_bool("force_rebuild", raw["force_rebuild"])
        for key in ("workers", "write_concurrency", "progress_every"):
            if key in raw:
                values[key] = _parse_int(key, raw[key])

        return cls(**values).validate()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BuildConfig":
        """Load from ``PLZ_*`` environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        raw = {
            field_name: env[var]
            for field_name, var in _ENV_KEYS.items()
            if var in env
        }
        try:
            return cls.from_mapping(raw)
        except ConfigError as e:
            raise ConfigError(f"Environment: {e}") from None

    @classmethod
    def from_yaml(cls, path: str | Path) -> "BuildConfig":
        """Load from a YAML file with a top-level ``build:`` mapping (or flat keys)."""
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        section = raw.get("build", raw)
        if not isinstance(section, dict):
            raise ConfigError(f"{path}: 'build' must be a mapping")
        return cls.from_mapping(section)

    def with_overrides(self, **overrides: Any) -> "BuildConfig":
        """Return a copy with the non-None overrides applied, re-validated."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update({k: v for k, v in overrides.items() if v is not None})
        return BuildConfig.from_mapping(current)
