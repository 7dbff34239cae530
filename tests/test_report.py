"""Tests for report collection."""

from unittest.mock import patch

from conftest import FakeProbe, make_pane

from tmux_mem.collectors import PanesUnavailable
from tmux_mem.models import UNKNOWN_TARGET
from tmux_mem.report import HistoryCache, collect_report, load_panes


class TestHistoryCache:
    """Tests for HistoryCache."""

    def test_measures_once_per_pane(self) -> None:
        calls: list[str] = []

        def estimator(target: str) -> int:
            calls.append(target)
            return 512

        cache = HistoryCache(estimator)
        assert cache.measure("s:1.0") == 512
        assert cache.measure("s:1.0") == 512
        assert cache.measure("s:2.0") == 512
        assert calls == ["s:1.0", "s:2.0"]

    def test_disabled_never_calls_estimator(self) -> None:
        calls: list[str] = []
        cache = HistoryCache(calls.append, enabled=False)
        assert cache.measure("s:1.0") == 0
        assert calls == []
        assert "s:1.0" not in cache

    def test_estimator_failure_is_zero(self) -> None:
        def estimator(target: str) -> int:
            raise RuntimeError("tmux gone")

        cache = HistoryCache(estimator)
        assert cache.measure("s:1.0") == 0
        assert "s:1.0" in cache


class TestCollectReport:
    """Tests for collect_report."""

    def test_attribution_and_ordering(self, fake_probe: FakeProbe) -> None:
        """Descendants of a pane root are attributed; others get the unknown pane."""
        pane = make_pane(target="s:1.0", root_pid=100)
        report = collect_report([400, 200, 300], [pane], fake_probe)

        assert [r.pid for r in report.processes] == [300, 200, 400]
        by_pid = {r.pid: r for r in report.processes}
        assert by_pid[300].target == "s:1.0"
        assert by_pid[300].command == "opencode --serve"
        assert by_pid[300].swap_bytes == 100
        assert by_pid[300].physical_bytes == 200
        assert by_pid[300].resident_bytes == 300
        assert by_pid[300].history_bytes == 1000
        assert by_pid[200].history_bytes == 1000
        assert by_pid[400].target == UNKNOWN_TARGET
        assert by_pid[400].history_size == -1
        assert by_pid[400].history_bytes == 0

    def test_pane_aggregation(self, fake_probe: FakeProbe) -> None:
        """End to end: two processes in one pane aggregate without double counting."""
        pane = make_pane(target="s:1.0", root_pid=100)
        report = collect_report([300, 200, 400], [pane], fake_probe)

        assert [p.target for p in report.panes] == ["s:1.0", "?"]
        shared = report.panes[0]
        assert shared.process_count == 2
        assert shared.pids == (300, 200)
        assert shared.swap_bytes == 150
        assert shared.physical_bytes == 270
        assert shared.resident_bytes == 390
        assert shared.history_bytes == 1000

    def test_history_measured_once_per_pane(self, fake_probe: FakeProbe) -> None:
        pane = make_pane(target="s:1.0", root_pid=100)
        collect_report([300, 200], [pane], fake_probe)
        assert fake_probe.history_calls == ["s:1.0"]

    def test_shared_ancestry_looked_up_once(self, fake_probe: FakeProbe) -> None:
        pane = make_pane(target="s:1.0", root_pid=100)
        collect_report([300, 200], [pane], fake_probe)
        assert fake_probe.parent_calls == [300, 200]

    def test_history_bytes_disabled(self, fake_probe: FakeProbe) -> None:
        pane = make_pane(target="s:1.0", root_pid=100)
        report = collect_report([300], [pane], fake_probe, history_bytes=False)
        assert fake_probe.history_calls == []
        assert report.processes[0].history_bytes == 0
        assert report.processes[0].history_size == 10

    def test_no_panes(self, fake_probe: FakeProbe) -> None:
        """Without a pane snapshot everything lands in the unknown pane."""
        report = collect_report([300, 200, 400], [], fake_probe)
        assert {r.target for r in report.processes} == {"?"}
        assert len(report.panes) == 1
        assert report.panes[0].process_count == 3

    def test_duplicate_pids_collected_once(self, fake_probe: FakeProbe) -> None:
        report = collect_report([300, 300], [], fake_probe)
        assert [r.pid for r in report.processes] == [300]

    def test_vanished_process(self) -> None:
        """A process that disappeared reports zeros and the sentinel command."""
        report = collect_report([999], [], FakeProbe())
        record = report.processes[0]
        assert record.command == "<unavailable>"
        assert (record.swap_bytes, record.physical_bytes, record.resident_bytes) == (0, 0, 0)

    def test_empty(self) -> None:
        report = collect_report([], [], FakeProbe())
        assert report.processes == []
        assert report.panes == []


class TestLoadPanes:
    """Tests for load_panes."""

    def test_unavailable_returns_empty(self) -> None:
        with (
            patch("tmux_mem.report.list_panes", side_effect=PanesUnavailable("no server")),
            patch("tmux_mem.report.console.panes_unavailable") as mock_warn,
        ):
            assert load_panes() == []
        mock_warn.assert_called_once_with("no server")

    def test_passes_snapshot_through(self) -> None:
        pane = make_pane()
        with patch("tmux_mem.report.list_panes", return_value=[pane]):
            assert load_panes(timeout=2.0) == [pane]
