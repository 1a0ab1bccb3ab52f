"""Routing elements: normalize parsed RIB entries to a common RoutingElement format."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class ElemType(str, Enum):
    ANNOUNCE = "A"
    WITHDRAW = "W"


class ElementSourceError(Exception):
    """Element source could not be opened or yielded a malformed record."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message

    def __reduce__(self):
        return type(self), (self.url, self.message)


@dataclass(frozen=True)
class RoutingElement:
    """One RIB entry as seen by a route collector peer."""
    elem_type: ElemType
    peer_ip: IPAddress
    peer_asn: int
    prefix: IPNetwork
    as_path: Optional[tuple[int, ...]] = None   # None: absent or has AS sets/confeds

    def as_path_seq(self, dedup: bool = True) -> Optional[list[int]]:
        """
        Flattened AS path, receiver to origin.

        With dedup, consecutive duplicates (prepending) are collapsed.
        Returns None when there is no usable path.
        """
        if not self.as_path:
            return None
        if not dedup:
            return list(self.as_path)
        seq: list[int] = []
        for asn in self.as_path:
            if not seq or seq[-1] != asn:
                seq.append(asn)
        return seq

    @property
    def is_announce(self) -> bool:
        return self.elem_type == ElemType.ANNOUNCE

    @property
    def is_default_route(self) -> bool:
        return self.prefix.prefixlen == 0


def parse_as_path(raw: Optional[str]) -> Optional[tuple[int, ...]]:
    """
    Parse a textual AS path like "174 3356 15169".

    Paths holding AS sets ("{64512,64513}") or confederation segments
    ("(65001 65002)" / "[65001,65002]") cannot be flattened and give None.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    if any(ch in raw for ch in "{}()[]"):
        return None
    path: list[int] = []
    for token in raw.split():
        if not token.isdigit():
            return None
        path.append(int(token))
    return tuple(path)


def make_element(
    elem_type: str | ElemType,
    peer_ip: str,
    peer_asn: int,
    prefix: str,
    as_path: Optional[str | list[int]] = None,
) -> RoutingElement:
    """Build a RoutingElement from plain values. Raises ValueError on bad addresses."""
    if isinstance(as_path, str) or as_path is None:
        path = parse_as_path(as_path)
    else:
        path = tuple(int(a) for a in as_path) or None
    return RoutingElement(
        elem_type=ElemType(elem_type),
        peer_ip=ipaddress.ip_address(peer_ip),
        peer_asn=int(peer_asn),
        prefix=ipaddress.ip_network(prefix, strict=False),
        as_path=path,
    )
