"""
peer-stats processor: basic counting information for route collector peers.

Each peer (keyed by IP) gets one PeerInfo record holding the prefixes it
announced, its directly connected ASes and whether it sent default routes.
Only set sizes end up in the artifact.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Optional

from elements import IPAddress, RoutingElement
from models import PeerInfoEntry, PeerStatsCollectorJson, PeerStatsSummaryJson
from processors import MessageProcessor
from targets import RibMeta


@dataclass
class PeerInfo:
    """Aggregated view of one route collector peer."""
    ip: IPAddress
    asn: int
    collector: Optional[str] = None
    ipv4_pfxs: set[ipaddress.IPv4Network] = field(default_factory=set)
    ipv6_pfxs: set[ipaddress.IPv6Network] = field(default_factory=set)
    connected_asns: set[int] = field(default_factory=set)
    ipv4_default: bool = False   # announced 0.0.0.0/0
    ipv6_default: bool = False   # announced ::/0

    def to_entry(self) -> PeerInfoEntry:
        return PeerInfoEntry(
            ip=str(self.ip),
            collector=self.collector,
            asn=self.asn,
            num_v4_pfxs=len(self.ipv4_pfxs),
            num_v6_pfxs=len(self.ipv6_pfxs),
            num_connected_asns=len(self.connected_asns),
            has_v4_default=self.ipv4_default,
            has_v6_default=self.ipv6_default,
        )


def _ip_sort_key(ip: str):
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return (0, 0, ip)
    return (addr.version, int(addr), ip)


class PeerStatsProcessor(MessageProcessor):
    collector_model = PeerStatsCollectorJson

    def __init__(self, output_dir: Optional[str] = None, **kwargs):
        super().__init__("peer-stats", output_dir, **kwargs)

    def _reset_state(self) -> None:
        self.peer_info_map: dict[IPAddress, PeerInfo] = {}

    def process_entry(self, elem: RoutingElement) -> None:
        peer_info = self.peer_info_map.get(elem.peer_ip)
        if peer_info is None:
            peer_info = PeerInfo(
                ip=elem.peer_ip,
                asn=elem.peer_asn,
                collector=self.rib_meta.collector if self.rib_meta else None,
            )
            self.peer_info_map[elem.peer_ip] = peer_info

        if not elem.is_announce:
            return

        seq = elem.as_path_seq(dedup=True)
        if seq:
            peer_info.connected_asns.add(seq[0])

        prefix = elem.prefix
        if prefix.version == 4:
            if prefix.prefixlen == 0:
                peer_info.ipv4_default = True
            peer_info.ipv4_pfxs.add(prefix)
        else:
            if prefix.prefixlen == 0:
                peer_info.ipv6_default = True
            peer_info.ipv6_pfxs.add(prefix)

    def peer_entries(self) -> list[PeerInfoEntry]:
        entries = [p.to_entry() for p in self.peer_info_map.values()]
        entries.sort(key=lambda e: _ip_sort_key(e.ip))
        return entries

    def to_result(self) -> Optional[PeerStatsCollectorJson]:
        if self.rib_meta is None:
            return None
        return PeerStatsCollectorJson(
            project=self.rib_meta.project,
            collector=self.rib_meta.collector,
            rib_dump_url=self.rib_meta.rib_dump_url,
            peers=self.peer_entries(),
        )

    def summarize_latest(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> PeerStatsSummaryJson:
        # Last snapshot wins per peer IP: records are replaced, not added up,
        # unlike the other processors' merges.
        merged: dict[str, PeerInfoEntry] = {}
        rib_dump_urls: list[str] = []

        for rib_meta, data in self._iter_latest(rib_metas, ignore_error):
            rib_dump_urls.append(rib_meta.rib_dump_url)
            for entry in data.peers:
                merged[entry.ip] = entry

        summary = PeerStatsSummaryJson(
            rib_dump_urls=rib_dump_urls,
            peers=sorted(merged.values(), key=lambda e: _ip_sort_key(e.ip)),
        )
        self._write_summary(summary)
        return summary
