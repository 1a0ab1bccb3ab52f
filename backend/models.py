"""
Artifact models for RIB statistics.

Every processor writes two document shapes:
- collector documents: one per snapshot (project, collector, rib_dump_url + entries)
- summary documents: merged across snapshots (rib_dump_urls + entries)
"""

from typing import Optional

from pydantic import BaseModel, Field


class CollectorDocument(BaseModel):
    """Per-snapshot artifact header."""
    project: str
    collector: str
    rib_dump_url: str


class SummaryDocument(BaseModel):
    """Cross-snapshot artifact header: locators of the snapshots that were merged."""
    rib_dump_urls: list[str] = Field(default_factory=list)


# --- peer-stats ---

class PeerInfoEntry(BaseModel):
    ip: str
    collector: Optional[str] = None
    asn: int
    num_v4_pfxs: int = 0
    num_v6_pfxs: int = 0
    num_connected_asns: int = 0
    has_v4_default: bool = False
    has_v6_default: bool = False


class PeerStatsCollectorJson(CollectorDocument):
    peers: list[PeerInfoEntry] = Field(default_factory=list)


class PeerStatsSummaryJson(SummaryDocument):
    peers: list[PeerInfoEntry] = Field(default_factory=list)


# --- pfx2as ---

class Prefix2AsCount(BaseModel):
    prefix: str
    asn: int
    count: int


class Prefix2AsCollectorJson(CollectorDocument):
    pfx2as: list[Prefix2AsCount] = Field(default_factory=list)


class Prefix2AsSummaryJson(SummaryDocument):
    pfx2as: list[Prefix2AsCount] = Field(default_factory=list)


# --- as2rel ---

class As2relEntry(BaseModel):
    asn1: int
    asn2: int
    paths_count: int
    peers_count: int
    rel: int                 # 0: undetermined/peer, 1: asn1 provider of asn2


class As2relCollectorJson(CollectorDocument):
    as2rel: list[As2relEntry] = Field(default_factory=list)


class As2relSummaryJson(SummaryDocument):
    as2rel: list[As2relEntry] = Field(default_factory=list)


# --- pfx2dist ---

class Prefix2Dist(BaseModel):
    prefix: str
    collector_asn: int       # AS adjacent to the collector (head of the path)
    distance: int            # shortest AS-path length seen


class Prefix2DistCollectorJson(CollectorDocument):
    pfx2dist: list[Prefix2Dist] = Field(default_factory=list)


class Prefix2DistSummaryJson(SummaryDocument):
    pfx2dist: list[Prefix2Dist] = Field(default_factory=list)
