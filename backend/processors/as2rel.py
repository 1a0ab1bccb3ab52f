"""
as2rel processor: raw per-message evidence of AS relationships.

Two kinds of evidence are collected, each keyed by (asn1, asn2, rel):

rel 0: asn1 and asn2 are adjacent in a path, keyed exactly as observed
       (receiver side first), so (A, B, 0) and (B, A, 0) are distinct.
rel 1: asn1 is a provider of asn2. Inferred from the path segment between
       the origin and the first Tier-1 AS reached from it: below the
       Tier-1, every hop is taken as the customer of the hop above it.

Each key counts messages and the distinct peers that reported them. Nothing
is disambiguated here; a pair may carry both rel 0 and rel 1 evidence.
"""

from __future__ import annotations

from typing import Optional

from elements import IPAddress, RoutingElement
from models import As2relCollectorJson, As2relEntry, As2relSummaryJson
from processors import MessageProcessor
from targets import RibMeta

REL_ADJACENT = 0
REL_PROVIDER_CUSTOMER = 1

# Default-free ASes used as the only ground truth
TIER1_ASNS: frozenset[int] = frozenset({
    6762, 12956, 2914, 3356, 6453, 1239, 701, 6461, 3257, 1299, 3491, 7018,
    3320, 5511, 6830, 174, 6939,
})

As2relKey = tuple[int, int, int]


def first_tier1_index(path: list[int], tier1: frozenset[int] = TIER1_ASNS) -> Optional[int]:
    """Index of the first Tier-1 AS in `path`, or None."""
    for i, asn in enumerate(path):
        if asn in tier1:
            return i
    return None


def provider_customer_pairs(path: list[int], tier1: frozenset[int] = TIER1_ASNS) -> list[tuple[int, int]]:
    """
    (provider, customer) pairs implied by a receiver-to-origin `path`.

    The path is walked from the origin up to (not including) the first
    Tier-1 AS; each adjacent pair in that stretch yields one pair.
    """
    origin_first = path[::-1]
    t = first_tier1_index(origin_first, tier1)
    if t is None:
        return []
    # range(t - 1), not range(t): the Tier-1 is never recorded as a provider,
    # so a Tier-1 next to the origin gives no pair
    return [(origin_first[i + 1], origin_first[i]) for i in range(t - 1)]


class As2relProcessor(MessageProcessor):
    collector_model = As2relCollectorJson

    def __init__(self, output_dir: Optional[str] = None, tier1: frozenset[int] = TIER1_ASNS, **kwargs):
        self.tier1 = frozenset(tier1)
        super().__init__("as2rel", output_dir, **kwargs)

    def _reset_state(self) -> None:
        self.as2rel_map: dict[As2relKey, tuple[int, set[IPAddress]]] = {}

    def _record(self, key: As2relKey, peer_ip: IPAddress) -> None:
        count, peers = self.as2rel_map.get(key, (0, set()))
        peers.add(peer_ip)
        self.as2rel_map[key] = (count + 1, peers)

    def process_entry(self, elem: RoutingElement) -> None:
        if not elem.is_announce:
            return
        if elem.is_default_route:
            return

        path = elem.as_path_seq(dedup=True)
        if not path:
            return

        for asn1, asn2 in zip(path, path[1:]):
            self._record((asn1, asn2, REL_ADJACENT), elem.peer_ip)

        if not any(asn in self.tier1 for asn in path):
            return

        for provider, customer in provider_customer_pairs(path, self.tier1):
            self._record((provider, customer, REL_PROVIDER_CUSTOMER), elem.peer_ip)

    def get_count_vec(self) -> list[As2relEntry]:
        return [
            As2relEntry(asn1=asn1, asn2=asn2, paths_count=count, peers_count=len(peers), rel=rel)
            for (asn1, asn2, rel), (count, peers) in sorted(self.as2rel_map.items(), key=lambda kv: kv[0])
        ]

    def to_result(self) -> Optional[As2relCollectorJson]:
        if self.rib_meta is None:
            return None
        return As2relCollectorJson(
            project=self.rib_meta.project,
            collector=self.rib_meta.collector,
            rib_dump_url=self.rib_meta.rib_dump_url,
            as2rel=self.get_count_vec(),
        )

    def summarize_latest(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> As2relSummaryJson:
        # peers_count is summed, not re-deduplicated: a peer seen in two
        # snapshots is counted twice.
        as2rel_map: dict[As2relKey, tuple[int, int]] = {}
        rib_dump_urls: list[str] = []

        for rib_meta, data in self._iter_latest(rib_metas, ignore_error):
            rib_dump_urls.append(rib_meta.rib_dump_url)
            for entry in data.as2rel:
                key = (entry.asn1, entry.asn2, entry.rel)
                msg_count, peers_count = as2rel_map.get(key, (0, 0))
                as2rel_map[key] = (msg_count + entry.paths_count, peers_count + entry.peers_count)

        summary = As2relSummaryJson(
            rib_dump_urls=rib_dump_urls,
            as2rel=[
                As2relEntry(asn1=asn1, asn2=asn2, paths_count=count, peers_count=peers, rel=rel)
                for (asn1, asn2, rel), (count, peers) in sorted(as2rel_map.items())
            ],
        )
        self._write_summary(summary)
        return summary
