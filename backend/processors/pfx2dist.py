"""
pfx2dist processor: distance of each prefix to the collector-side AS.

The reference AS is the head of the (unreversed) AS path, i.e. the AS the
collector peers with. Distance is the AS-path length with prepending
collapsed; the shortest one seen is kept.
"""

from __future__ import annotations

from typing import Optional

from elements import RoutingElement
from models import Prefix2Dist, Prefix2DistCollectorJson, Prefix2DistSummaryJson
from processors import MessageProcessor
from targets import RibMeta


def _dist_entries(pfx2dist_map: dict[tuple[str, int], int]) -> list[Prefix2Dist]:
    return [
        Prefix2Dist(prefix=prefix, collector_asn=asn, distance=distance)
        for (prefix, asn), distance in sorted(pfx2dist_map.items())
    ]


class Prefix2DistProcessor(MessageProcessor):
    collector_model = Prefix2DistCollectorJson

    def __init__(self, output_dir: Optional[str] = None, **kwargs):
        super().__init__("pfx2dist", output_dir, **kwargs)

    def _reset_state(self) -> None:
        self.pfx2dist_map: dict[tuple[str, int], int] = {}

    def process_entry(self, elem: RoutingElement) -> None:
        if not elem.is_announce:
            return
        if elem.is_default_route:
            return

        path = elem.as_path_seq(dedup=True)
        if not path:
            return

        key = (str(elem.prefix), path[0])
        if len(path) < self.pfx2dist_map.get(key, float("inf")):
            self.pfx2dist_map[key] = len(path)

    def get_count_vec(self) -> list[Prefix2Dist]:
        return _dist_entries(self.pfx2dist_map)

    def to_result(self) -> Optional[Prefix2DistCollectorJson]:
        if self.rib_meta is None:
            return None
        return Prefix2DistCollectorJson(
            project=self.rib_meta.project,
            collector=self.rib_meta.collector,
            rib_dump_url=self.rib_meta.rib_dump_url,
            pfx2dist=self.get_count_vec(),
        )

    def summarize_latest(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> Prefix2DistSummaryJson:
        pfx2dist_map: dict[tuple[str, int], int] = {}
        rib_dump_urls: list[str] = []

        for rib_meta, data in self._iter_latest(rib_metas, ignore_error):
            rib_dump_urls.append(rib_meta.rib_dump_url)
            for entry in data.pfx2dist:
                key = (entry.prefix, entry.collector_asn)
                if entry.distance < pfx2dist_map.get(key, float("inf")):
                    pfx2dist_map[key] = entry.distance

        summary = Prefix2DistSummaryJson(
            rib_dump_urls=rib_dump_urls,
            pfx2dist=_dist_entries(pfx2dist_map),
        )
        self._write_summary(summary)
        return summary
