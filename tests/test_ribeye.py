"""Tests for the RibEye pipeline coordinator."""

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from elements import ElementSourceError, ElemType, RoutingElement, make_element
from processors import MessageProcessor, ProcessorError
from processors.as2rel import As2relProcessor
from processors.peer_stats import PeerStatsProcessor
from processors.pfx2as import Prefix2AsProcessor
from processors.pfx2dist import Prefix2DistProcessor
from ribeye import PROCESSORS, RibEye, build_processors
from targets import RibMeta

RIB_META = RibMeta("riperis", "rrc00", "bview.20240101.0000.gz", datetime(2024, 1, 1))

ELEMENTS = [
    make_element("A", "192.0.2.1", 3356, "8.8.8.0/24", "3356 174 65001 15169"),
    make_element("A", "192.0.2.1", 3356, "0.0.0.0/0", "3356"),
    make_element("A", "192.0.2.2", 6939, "2001:db8::/32", "6939 65010 65020"),
    make_element("W", "192.0.2.3", 64500, "8.8.8.0/24"),
    make_element("A", "192.0.2.2", 6939, "8.8.8.0/24", "6939 6939 15169"),
]


class EntryCounter(MessageProcessor):
    """Counts announcements and withdrawals; logs calls into a shared journal."""

    def __init__(self, label: str, journal: list, fail_on: Optional[int] = None, **kwargs):
        self.label = label
        self.journal = journal
        self.fail_on = fail_on
        super().__init__(f"counter-{label}", **kwargs)

    def _reset_state(self) -> None:
        self.a_count = 0
        self.w_count = 0
        self.seen = 0

    def process_entry(self, elem: RoutingElement) -> None:
        self.seen += 1
        self.journal.append((self.label, self.seen))
        if self.fail_on is not None and self.seen == self.fail_on:
            raise RuntimeError("corrupted state")
        if elem.elem_type == ElemType.ANNOUNCE:
            self.a_count += 1
        else:
            self.w_count += 1

    def output(self) -> None:
        self.journal.append((self.label, "output"))

    def to_result(self):
        return None

    def summarize_latest(self, rib_metas, ignore_error=True):
        return None


def _source(elements):
    opened = []

    def source(path):
        opened.append(path)
        return iter(elements)

    return source, opened


class TestCoordinator:

    def test_no_processors_does_not_open_source(self):
        source, opened = _source(ELEMENTS)
        RibEye(element_source=source).process_mrt_file("rib.bz2")
        assert opened == []

    def test_fan_out_in_registration_order(self):
        journal = []
        source, opened = _source(ELEMENTS[:2])
        ribeye = RibEye(element_source=source)
        ribeye.add_processor(EntryCounter("a", journal)).add_processor(EntryCounter("b", journal))
        ribeye.process_mrt_file("rib.bz2")
        assert opened == ["rib.bz2"]
        assert journal == [("a", 1), ("b", 1), ("a", 2), ("b", 2), ("a", "output"), ("b", "output")]

    def test_counts(self):
        journal = []
        source, _ = _source(ELEMENTS)
        counter = EntryCounter("a", journal)
        RibEye(element_source=source).add_processor(counter).process_mrt_file("rib.bz2")
        assert (counter.a_count, counter.w_count) == (4, 1)

    def test_failure_aborts_all_processors(self):
        journal = []
        source, _ = _source(ELEMENTS)
        ribeye = RibEye(element_source=source)
        ribeye.add_processor(EntryCounter("a", journal, fail_on=2))
        ribeye.add_processor(EntryCounter("b", journal))
        ribeye.with_rib_meta(RIB_META)
        with pytest.raises(ProcessorError) as exc_info:
            ribeye.process_mrt_file("rib.bz2")
        assert exc_info.value.processor == "counter-a"
        assert exc_info.value.rib_dump_url == RIB_META.rib_dump_url
        assert journal == [("a", 1), ("b", 1), ("a", 2)]

    def test_output_failure_propagates(self, tmp_path: Path):
        class BrokenStorage:
            def exists(self, target):
                return False

            def write(self, target, payload):
                raise OSError("read-only filesystem")

        source, _ = _source(ELEMENTS)
        ribeye = RibEye(element_source=source)
        ribeye.add_processor(Prefix2AsProcessor(str(tmp_path), storage=BrokenStorage()))
        ribeye.with_rib_meta(RIB_META)
        with pytest.raises(ProcessorError, match="output failed"):
            ribeye.process_mrt_file("rib.bz2")

    def test_source_errors_propagate_unwrapped(self):
        def source(path):
            yield ELEMENTS[0]
            raise ElementSourceError(path, "malformed stream after 1 elements: truncated")

        proc = Prefix2AsProcessor()
        ribeye = RibEye(element_source=source).add_processor(proc)
        with pytest.raises(ElementSourceError) as exc_info:
            ribeye.process_mrt_file("rib.bz2")
        assert exc_info.value.url == "rib.bz2"
        assert len(proc.get_count_vec()) == 1


class TestOutputs:

    def _run(self, output_dir: Path, processors=None):
        source, _ = _source(ELEMENTS)
        ribeye = RibEye(element_source=source).with_processor_names(processors or [], str(output_dir))
        ribeye.with_rib_meta(RIB_META).process_mrt_file(RIB_META.rib_dump_url)
        return ribeye

    def test_writes_archival_and_latest(self, tmp_path: Path):
        self._run(tmp_path)
        for name in PROCESSORS:
            assert (tmp_path / name / "rrc00" / "latest.json.bz2").exists()
            archival = list((tmp_path / name / "rrc00" / "2024" / "01").glob(f"{name}_rrc00_2024-01-01_*.json.bz2"))
            assert len(archival) == 1

    def test_in_memory_processor_writes_nothing(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        source, _ = _source(ELEMENTS)
        proc = Prefix2AsProcessor()
        RibEye(element_source=source).add_processor(proc).with_rib_meta(RIB_META).process_mrt_file("rib")
        assert proc.output_paths() is None
        assert list(tmp_path.iterdir()) == []

    def test_skip_when_archival_exists(self, tmp_path: Path):
        self._run(tmp_path, ["pfx2as"])
        latest = tmp_path / "pfx2as" / "rrc00" / "latest.json.bz2"
        before = latest.read_bytes()

        source, opened = _source(ELEMENTS)
        skipped = Prefix2AsProcessor(str(tmp_path))
        calls = []
        skipped.process_entry = lambda elem: calls.append(elem)
        ribeye = RibEye(element_source=source).add_processor(skipped)
        ribeye.with_rib_meta(RIB_META).process_mrt_file(RIB_META.rib_dump_url)

        assert calls == []
        assert opened == []
        assert latest.read_bytes() == before

    def test_skip_only_affects_finished_processors(self, tmp_path: Path):
        self._run(tmp_path, ["pfx2as"])
        ribeye = RibEye().with_processor_names(["pfx2as", "as2rel"], str(tmp_path)).with_rib_meta(RIB_META)
        assert [p.name() for p in ribeye.processors] == ["as2rel"]

    def test_later_snapshot_of_same_collector_not_skipped(self, tmp_path: Path):
        self._run(tmp_path, ["pfx2as"])
        assert (tmp_path / "pfx2as" / "rrc00" / "latest.json.bz2").exists()
        later = RibMeta("riperis", "rrc00", "bview.20240101.0800.gz", datetime(2024, 1, 1, 8))
        ribeye = RibEye().with_processor_names(["pfx2as"], str(tmp_path)).with_rib_meta(later)
        assert [p.name() for p in ribeye.processors] == ["pfx2as"]

    def test_rerun_is_idempotent(self):
        def run():
            procs = [PeerStatsProcessor(), Prefix2AsProcessor(), As2relProcessor(), Prefix2DistProcessor()]
            source, _ = _source(ELEMENTS)
            ribeye = RibEye(element_source=source)
            for p in procs:
                ribeye.add_processor(p)
            ribeye.with_rib_meta(RIB_META).process_mrt_file("rib")
            return [p.to_result_string() for p in procs]

        assert run() == run()

    def test_reset_between_snapshots(self):
        proc = Prefix2AsProcessor()
        source, _ = _source(ELEMENTS)
        ribeye = RibEye(element_source=source).add_processor(proc)
        ribeye.with_rib_meta(RIB_META).process_mrt_file("rib")
        first = proc.get_count_vec()
        ribeye.with_rib_meta(RIB_META).process_mrt_file("rib")
        assert proc.get_count_vec() == first


class TestBuildProcessors:

    def test_all_by_default(self):
        names = [p.name() for p in build_processors([], None)]
        assert names == ["pfx2as", "pfx2dist", "as2rel", "peer-stats"]

    def test_aliases(self):
        assert [p.name() for p in build_processors(["peer_stats", "PFX2AS"], None)] == ["peer-stats", "pfx2as"]

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="unknown processor"):
            build_processors(["bogus"], None)

    def test_options_are_passed(self, tmp_path: Path):
        (proc,) = build_processors(["as2rel"], str(tmp_path), latest_by_month=True, compress=False)
        assert proc.processor_meta.latest_by_month is True
        assert proc.processor_meta.suffix == ".json"
