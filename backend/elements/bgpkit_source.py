"""
bgpkit element source: stream RoutingElements out of an MRT RIB dump.

Decoding is done by pybgpkit-parser; this module only normalizes its
elements into RoutingElement. Accepts local paths and remote (optionally
compressed) URLs, whatever the parser accepts.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from elements import ElementSourceError, RoutingElement, make_element

logger = logging.getLogger(__name__)


def convert_elem(elem, url: str = "") -> RoutingElement:
    """Convert one pybgpkit-parser element. Raises ElementSourceError when malformed."""
    try:
        return make_element(
            elem_type=elem.elem_type,
            peer_ip=elem.peer_ip,
            peer_asn=elem.peer_asn,
            prefix=elem.prefix,
            as_path=elem.as_path,
        )
    except (ValueError, TypeError, AttributeError) as exc:
        raise ElementSourceError(url, f"malformed element: {exc}") from exc


def iter_elements(url: str, cache_dir: Optional[str] = None) -> Iterator[RoutingElement]:
    """Yield every element of the dump at `url`, in file order."""
    from pybgpkit_parser import Parser

    try:
        parser = Parser(url=url, cache_dir=cache_dir)
    except Exception as exc:
        raise ElementSourceError(url, f"failed to open: {exc}") from exc

    logger.info("parsing %s", url)
    count = 0
    records = iter(parser)
    while True:
        # only the parser's own failures are wrapped here; conversion errors
        # already carry the url
        try:
            elem = next(records)
        except StopIteration:
            break
        except Exception as exc:
            raise ElementSourceError(url, f"malformed stream after {count} elements: {exc}") from exc
        count += 1
        yield convert_elem(elem, url)
    logger.info("parsed %d elements from %s", count, url)
