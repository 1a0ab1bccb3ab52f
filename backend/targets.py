"""
Output targets: where each processor's artifacts live.

For a (processor, snapshot) pair there are two targets:
1. archival: partitioned by processor/collector/year/month, file name carries
   the calendar date and the exact dump timestamp
2. latest: one per processor and collector (optionally per month), overwritten
   on every run

Summaries across snapshots go to one canonical file per processor.
Targets are plain strings: a local path, or a `scheme://` URI that only a
matching storage backend understands.
"""

from __future__ import annotations

import calendar
import os
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RibMeta:
    """Meta information of one RIB dump file."""
    project: str          # route-views, riperis
    collector: str        # route-views2, rrc00
    rib_dump_url: str
    timestamp: datetime   # naive UTC

    @classmethod
    def from_collector(cls, collector: str, rib_dump_url: str, timestamp: datetime) -> "RibMeta":
        """Build meta for a collector, deriving the project from its name."""
        return cls(
            project=project_for_collector(collector),
            collector=collector,
            rib_dump_url=rib_dump_url,
            timestamp=timestamp,
        )


def project_for_collector(collector: str) -> str:
    return "riperis" if collector.startswith("rrc") else "route-views"


@dataclass
class ProcessorMeta:
    """Name and output layout of a processor."""
    name: str
    output_dir: str
    latest_by_month: bool = False
    compress: bool = True

    @property
    def suffix(self) -> str:
        return ".json.bz2" if self.compress else ".json"


def is_remote(target: str) -> bool:
    return "://" in target


def _ensure_dir(directory: str) -> None:
    if not is_remote(directory):
        os.makedirs(directory, exist_ok=True)


def _unix_ts(ts: datetime) -> int:
    return calendar.timegm(ts.utctimetuple())


def get_default_output_path(rib_meta: RibMeta, processor_meta: ProcessorMeta) -> str:
    """Archival target for one snapshot."""
    ts = rib_meta.timestamp
    output_dir = (
        f"{processor_meta.output_dir}/{processor_meta.name}/{rib_meta.collector}"
        f"/{ts.year:04d}/{ts.month:02d}"
    )
    _ensure_dir(output_dir)
    file_name = (
        f"{processor_meta.name}_{rib_meta.collector}_"
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}_{_unix_ts(ts)}{processor_meta.suffix}"
    )
    return f"{output_dir}/{file_name}"


def get_latest_output_path(rib_meta: RibMeta, processor_meta: ProcessorMeta) -> str:
    """Latest target for the snapshot's collector, overwritten every run."""
    output_dir = f"{processor_meta.output_dir}/{processor_meta.name}/{rib_meta.collector}"
    if processor_meta.latest_by_month:
        ts = rib_meta.timestamp
        output_dir = f"{output_dir}/{ts.year:04d}/{ts.month:02d}"
    _ensure_dir(output_dir)
    return f"{output_dir}/latest{processor_meta.suffix}"


def get_summary_output_path(processor_meta: ProcessorMeta) -> str:
    """Canonical un-timestamped target for the cross-snapshot summary."""
    output_dir = f"{processor_meta.output_dir}/{processor_meta.name}"
    _ensure_dir(output_dir)
    return f"{output_dir}/latest{processor_meta.suffix}"
