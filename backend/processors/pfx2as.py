"""pfx2as processor: count how often each (prefix, origin AS) pair is announced."""

from __future__ import annotations

from typing import Optional

from elements import RoutingElement
from models import Prefix2AsCollectorJson, Prefix2AsCount, Prefix2AsSummaryJson
from processors import MessageProcessor
from targets import RibMeta


def _count_entries(pfx2as_map: dict[tuple[str, int], int]) -> list[Prefix2AsCount]:
    return [
        Prefix2AsCount(prefix=prefix, asn=asn, count=count)
        for (prefix, asn), count in sorted(pfx2as_map.items())
    ]


class Prefix2AsProcessor(MessageProcessor):
    collector_model = Prefix2AsCollectorJson

    def __init__(self, output_dir: Optional[str] = None, **kwargs):
        super().__init__("pfx2as", output_dir, **kwargs)

    def _reset_state(self) -> None:
        self.pfx2as_map: dict[tuple[str, int], int] = {}

    def process_entry(self, elem: RoutingElement) -> None:
        if not elem.is_announce:
            return
        if elem.is_default_route:
            return

        path = elem.as_path_seq(dedup=False)
        if not path:
            return

        key = (str(elem.prefix), path[-1])
        self.pfx2as_map[key] = self.pfx2as_map.get(key, 0) + 1

    def get_count_vec(self) -> list[Prefix2AsCount]:
        return _count_entries(self.pfx2as_map)

    def to_result(self) -> Optional[Prefix2AsCollectorJson]:
        if self.rib_meta is None:
            return None
        return Prefix2AsCollectorJson(
            project=self.rib_meta.project,
            collector=self.rib_meta.collector,
            rib_dump_url=self.rib_meta.rib_dump_url,
            pfx2as=self.get_count_vec(),
        )

    def summarize_latest(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> Prefix2AsSummaryJson:
        pfx2as_map: dict[tuple[str, int], int] = {}
        rib_dump_urls: list[str] = []

        for rib_meta, data in self._iter_latest(rib_metas, ignore_error):
            rib_dump_urls.append(rib_meta.rib_dump_url)
            for entry in data.pfx2as:
                key = (entry.prefix, entry.asn)
                pfx2as_map[key] = pfx2as_map.get(key, 0) + entry.count

        summary = Prefix2AsSummaryJson(
            rib_dump_urls=rib_dump_urls,
            pfx2as=_count_entries(pfx2as_map),
        )
        self._write_summary(summary)
        return summary
