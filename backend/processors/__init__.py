"""
RIB processors: snapshot-scoped aggregations over routing elements.

Every processor owns its state, consumes elements one at a time, writes a
per-snapshot artifact, and can merge the latest artifacts of many snapshots
into one summary. Processors never see each other's state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from pydantic import BaseModel

from elements import RoutingElement
from storage import LocalStorage, StorageError
from targets import (
    ProcessorMeta,
    RibMeta,
    get_default_output_path,
    get_latest_output_path,
    get_summary_output_path,
)

logger = logging.getLogger(__name__)


class ProcessorError(Exception):
    """A processor failed while consuming a snapshot or writing its output."""

    def __init__(self, processor: str, rib_dump_url: Optional[str], message: str):
        super().__init__(f"[{processor}] {rib_dump_url or '<no snapshot>'}: {message}")
        self.processor = processor
        self.rib_dump_url = rib_dump_url
        self.message = message

    def __reduce__(self):
        return type(self), (self.processor, self.rib_dump_url, self.message)


class SummarizeError(Exception):
    """A latest artifact could not be read while summarizing and errors are not ignored."""

    def __init__(self, processor: str, target: str, message: str):
        super().__init__(f"[{processor}] failed to read {target}: {message}")
        self.processor = processor
        self.target = target
        self.message = message

    def __reduce__(self):
        return type(self), (self.processor, self.target, self.message)


class MessageProcessor(ABC):
    """Base class for RIB processors."""

    #: model of the per-snapshot artifact, used to read latest files back
    collector_model: type[BaseModel]

    def __init__(
        self,
        name: str,
        output_dir: Optional[str] = None,
        latest_by_month: bool = False,
        compress: bool = True,
        storage: Optional[LocalStorage] = None,
    ):
        self.processor_meta = ProcessorMeta(
            name=name,
            output_dir=output_dir or "",
            latest_by_month=latest_by_month,
            compress=compress,
        )
        self.rib_meta: Optional[RibMeta] = None
        self.storage = storage or LocalStorage()
        self._reset_state()

    def name(self) -> str:
        return self.processor_meta.name

    def output_paths(self) -> Optional[list[str]]:
        """Archival and latest targets. None means in-memory only."""
        if self.rib_meta is None or not self.processor_meta.output_dir:
            return None
        return [
            get_default_output_path(self.rib_meta, self.processor_meta),
            get_latest_output_path(self.rib_meta, self.processor_meta),
        ]

    def has_output(self, rib_meta: RibMeta) -> bool:
        """True if the archival artifact for `rib_meta` was already written."""
        if not self.processor_meta.output_dir:
            return False
        return self.storage.exists(get_default_output_path(rib_meta, self.processor_meta))

    def reset_processor(self, rib_meta: RibMeta) -> None:
        """Drop all aggregation state and bind the processor to a new snapshot."""
        self.rib_meta = rib_meta
        self._reset_state()

    @abstractmethod
    def _reset_state(self) -> None:
        ...

    @abstractmethod
    def process_entry(self, elem: RoutingElement) -> None:
        """Fold one element into the state. Unusable optional fields are skipped."""
        ...

    @abstractmethod
    def to_result(self) -> Optional[BaseModel]:
        """Per-snapshot document, or None when there is nothing to write."""
        ...

    def to_result_string(self) -> Optional[str]:
        result = self.to_result()
        if result is None:
            return None
        return result.model_dump_json(indent=2)

    def output(self) -> None:
        """Write the result document to every output target."""
        output_paths = self.output_paths()
        if not output_paths:
            return

        output_string = self.to_result_string()
        if output_string is None:
            return

        for output_path in output_paths:
            logger.info("finalizing %s processing, writing output to %s", self.name(), output_path)
            self.storage.write(output_path, output_string)

    @abstractmethod
    def summarize_latest(self, rib_metas: list[RibMeta], ignore_error: bool = True) -> BaseModel:
        """Merge the latest artifacts of `rib_metas` and write the summary."""
        ...

    # --- summarize plumbing shared by all variants ---

    def _iter_latest(self, rib_metas: list[RibMeta], ignore_error: bool) -> Iterator[tuple[RibMeta, BaseModel]]:
        """Yield each readable latest artifact, in the order given."""
        if not self.processor_meta.output_dir:
            raise ValueError(f"{self.name()}: summarizing needs an output_dir")
        for rib_meta in rib_metas:
            latest_file_path = get_latest_output_path(rib_meta, self.processor_meta)
            logger.info("summarizing %s...", latest_file_path)
            try:
                data = self.storage.read_json(latest_file_path, self.collector_model)
            except StorageError as exc:
                if ignore_error:
                    logger.warning("failed to read %s, skipping: %s", latest_file_path, exc)
                    continue
                raise SummarizeError(self.name(), latest_file_path, str(exc)) from exc
            yield rib_meta, data

    def _write_summary(self, summary: BaseModel) -> str:
        output_path = get_summary_output_path(self.processor_meta)
        logger.info("writing %s summary to %s", self.name(), output_path)
        self.storage.write(output_path, summary.model_dump_json(indent=2))
        return output_path
