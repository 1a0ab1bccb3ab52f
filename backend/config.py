"""
Job configuration: YAML file listing the snapshots to process and where to write.

    output_dir: ./results
    processors: [pfx2as, as2rel]
    latest_by_month: false
    compress: true
    ignore_errors: true
    workers: 1
    snapshots:
      - collector: rrc00
        url: https://data.ris.ripe.net/rrc00/2024.01/bview.20240101.0000.gz
        timestamp: 2024-01-01T00:00:00
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from targets import RibMeta, project_for_collector


class ConfigError(Exception):
    def __init__(self, path: str | Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = str(path)
        self.message = message

    def __reduce__(self):
        return type(self), (self.path, self.message)


def _to_naive_utc(value: Any) -> datetime:
    """Accept YAML timestamps, ISO strings and unix seconds."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        ts = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"unsupported timestamp {value!r}")
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _parse_snapshot(raw: Any) -> RibMeta:
    if not isinstance(raw, dict):
        raise ValueError(f"snapshot entry must be a mapping, got {type(raw).__name__}")
    for key in ("collector", "url", "timestamp"):
        if key not in raw:
            raise ValueError(f"snapshot entry missing '{key}'")
    collector = str(raw["collector"])
    return RibMeta(
        project=str(raw.get("project") or project_for_collector(collector)),
        collector=collector,
        rib_dump_url=str(raw["url"]),
        timestamp=_to_naive_utc(raw["timestamp"]),
    )


@dataclass
class RibstatsConfig:
    output_dir: str = "./results"
    processors: list[str] = field(default_factory=list)   # empty: all
    latest_by_month: bool = False
    compress: bool = True
    ignore_errors: bool = True
    cache_dir: Optional[str] = None
    workers: int = 1
    snapshots: list[RibMeta] = field(default_factory=list)

    def processor_kwargs(self) -> dict:
        return {"latest_by_month": self.latest_by_month, "compress": self.compress}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RibstatsConfig":
        path = Path(path)
        try:
            with open(path) as f:
                raw = yaml.safe_load(f)
        except OSError as exc:
            raise ConfigError(path, f"cannot read config: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(path, f"invalid YAML: {exc}") from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(path, "top level must be a mapping")

        try:
            snapshots = [_parse_snapshot(s) for s in raw.get("snapshots") or []]
        except ValueError as exc:
            raise ConfigError(path, str(exc)) from exc

        processors = raw.get("processors") or []
        if isinstance(processors, str):
            processors = [p for p in processors.split(",") if p.strip()]

        workers = raw.get("workers", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise ConfigError(path, f"workers must be a positive integer, got {workers!r}")

        flags = {}
        for key, default in (("latest_by_month", False), ("compress", True), ("ignore_errors", True)):
            value = raw.get(key, default)
            # quoted "false" would otherwise read as true
            if not isinstance(value, bool):
                raise ConfigError(path, f"{key} must be true or false, got {value!r}")
            flags[key] = value

        return cls(
            output_dir=str(raw.get("output_dir") or os.environ.get("RIBSTATS_OUTPUT_DIR", "./results")),
            processors=[str(p).strip() for p in processors],
            **flags,
            cache_dir=raw.get("cache_dir"),
            workers=workers,
            snapshots=snapshots,
        )
