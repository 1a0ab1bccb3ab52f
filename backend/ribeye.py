"""
RibEye: drive RIB processors over one snapshot, then summarize across snapshots.

One pass per dump file: every element goes to every processor, in
registration order. The first failure aborts the pass for all processors.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from elements import RoutingElement
from processors import MessageProcessor, ProcessorError
from processors.as2rel import As2relProcessor
from processors.peer_stats import PeerStatsProcessor
from processors.pfx2as import Prefix2AsProcessor
from processors.pfx2dist import Prefix2DistProcessor
from targets import RibMeta

logger = logging.getLogger(__name__)

ElementSource = Callable[[str], Iterable[RoutingElement]]

PROCESSORS: dict[str, type[MessageProcessor]] = {
    "pfx2as": Prefix2AsProcessor,
    "pfx2dist": Prefix2DistProcessor,
    "as2rel": As2relProcessor,
    "peer-stats": PeerStatsProcessor,
}

# accepted spellings → canonical processor name
_ALIASES = {
    "peer_stats": "peer-stats",
    "peerstats": "peer-stats",
}


def build_processors(names: Iterable[str], output_dir: Optional[str], **kwargs) -> list[MessageProcessor]:
    """Instantiate processors by name. No names means all of them."""
    names = list(names)
    if not names:
        names = list(PROCESSORS)
    processors = []
    for name in names:
        canonical = _ALIASES.get(name.strip().lower(), name.strip().lower())
        cls = PROCESSORS.get(canonical)
        if cls is None:
            raise ValueError(f"unknown processor '{name}', available: {', '.join(PROCESSORS)}")
        processors.append(cls(output_dir, **kwargs))
    return processors


def _default_source(url: str) -> Iterable[RoutingElement]:
    from elements.bgpkit_source import iter_elements
    return iter_elements(url)


class RibEye:
    """Pipeline coordinator: one set of processors, one snapshot at a time."""

    def __init__(self, element_source: Optional[ElementSource] = None):
        self.processors: list[MessageProcessor] = []
        self.rib_meta: Optional[RibMeta] = None
        self.element_source = element_source or _default_source

    def add_processor(self, processor: MessageProcessor) -> "RibEye":
        self.processors.append(processor)
        return self

    def with_processor_names(self, names: Iterable[str], output_dir: Optional[str], **kwargs) -> "RibEye":
        for processor in build_processors(names, output_dir, **kwargs):
            self.add_processor(processor)
        return self

    def with_rib_meta(self, rib_meta: RibMeta) -> "RibEye":
        """
        Bind all processors to a snapshot.

        Processors that already wrote the archival artifact for this
        snapshot are dropped from the run; they keep their output as is.
        The check looks at the archival target, not latest: latest is shared
        by every snapshot of a collector, so its presence says nothing about
        this one.
        """
        active = []
        for processor in self.processors:
            if processor.has_output(rib_meta):
                logger.info(
                    "%s output for %s already exists, skipping", processor.name(), rib_meta.rib_dump_url
                )
                continue
            processor.reset_processor(rib_meta)
            active.append(processor)
        self.processors = active
        self.rib_meta = rib_meta
        return self

    def _snapshot_url(self, path: str) -> str:
        return self.rib_meta.rib_dump_url if self.rib_meta else path

    def process_mrt_file(self, path: str) -> None:
        """Feed every element of `path` to every processor, then write outputs."""
        if not self.processors:
            logger.info("no active processors for %s, skipping", path)
            return

        url = self._snapshot_url(path)
        for elem in self.element_source(path):
            for processor in self.processors:
                try:
                    processor.process_entry(elem)
                except Exception as exc:
                    raise ProcessorError(processor.name(), url, f"processing failed: {exc}") from exc

        for processor in self.processors:
            try:
                processor.output()
            except Exception as exc:
                raise ProcessorError(processor.name(), url, f"output failed: {exc}") from exc

    def summarize_latest_files(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> dict:
        """Merge each processor's latest artifacts of `rib_metas`. Returns name → summary."""
        summaries = {}
        for processor in self.processors:
            logger.info("summarizing %s over %d snapshots", processor.name(), len(rib_metas))
            summaries[processor.name()] = processor.summarize_latest(rib_metas, ignore_error)
        return summaries
