"""Tests for ranking and per-pane aggregation."""

import random

from conftest import make_record

from tmux_mem.aggregate import (
    MAX_BYTES,
    aggregate_by_pane,
    pane_totals,
    process_totals,
    saturating_add,
    sort_panes,
    sort_processes,
)
from tmux_mem.models import UNKNOWN_HISTORY, PaneRecord


class TestSortProcesses:
    """Tests for the process ranking order."""

    def test_swap_then_physical_then_pid(self) -> None:
        rows = [
            make_record(pid=5, swap=10, physical=1),
            make_record(pid=4, swap=10, physical=9),
            make_record(pid=3, swap=99, physical=0),
            make_record(pid=1, swap=10, physical=9),
        ]
        assert [r.pid for r in sort_processes(rows)] == [3, 1, 4, 5]

    def test_permutation_invariant(self) -> None:
        """Shuffled input always sorts to the same output."""
        rows = [
            make_record(pid=pid, swap=pid % 3, physical=pid % 5) for pid in range(1, 40)
        ]
        expected = sort_processes(rows)
        rng = random.Random(1234)
        for _ in range(10):
            shuffled = rows[:]
            rng.shuffle(shuffled)
            assert sort_processes(shuffled) == expected


class TestSortPanes:
    """Tests for the pane ranking order."""

    def test_target_breaks_ties(self) -> None:
        rows = [
            PaneRecord(target="s:2.0", window_name="b", swap_bytes=5, physical_bytes=5),
            PaneRecord(target="s:1.0", window_name="a", swap_bytes=5, physical_bytes=5),
            PaneRecord(target="?", window_name="?", swap_bytes=1, physical_bytes=50),
        ]
        assert [r.target for r in sort_panes(rows)] == ["s:1.0", "s:2.0", "?"]


class TestAggregateByPane:
    """Tests for aggregate_by_pane."""

    def test_shared_pane_sums_memory_and_keeps_max_history(self) -> None:
        """Two processes in one pane: memory summed, history bytes not doubled."""
        rows = [
            make_record(
                pid=1, swap=100, physical=200, resident=300, history_size=10, history_bytes=1000
            ),
            make_record(pid=2, swap=50, physical=70, resident=90, history_size=11, history_bytes=900),
        ]
        panes = aggregate_by_pane(rows)
        assert len(panes) == 1
        pane = panes[0]
        assert pane.target == "s:1.0"
        assert pane.process_count == 2
        assert pane.pids == (1, 2)
        assert pane.swap_bytes == 150
        assert pane.physical_bytes == 270
        assert pane.resident_bytes == 390
        assert pane.history_bytes == 1000
        assert pane.history_size == 11
        assert pane.history_limit == 2000

    def test_history_limit_takes_largest(self) -> None:
        """history_limit is the largest member value, not the first or a sum."""
        rows = [
            make_record(pid=1, history_limit=2000),
            make_record(pid=2, history_limit=5000),
            make_record(pid=3, history_limit=3000),
        ]
        assert aggregate_by_pane(rows)[0].history_limit == 5000

    def test_larger_first_value_beats_later_smaller(self) -> None:
        """A later, smaller member value does not replace an earlier larger one."""
        rows = [
            make_record(pid=1, history_size=500, history_limit=9000, history_bytes=8000),
            make_record(pid=2, history_size=20, history_limit=2000, history_bytes=100),
        ]
        pane = aggregate_by_pane(rows)[0]
        assert pane.history_size == 500
        assert pane.history_limit == 9000
        assert pane.history_bytes == 8000

    def test_history_survives_skipped_measurement(self) -> None:
        """A member whose measurement returned 0 does not deflate the pane."""
        rows = [
            make_record(pid=1, history_bytes=0),
            make_record(pid=2, history_bytes=4096),
            make_record(pid=3, history_bytes=0),
        ]
        assert aggregate_by_pane(rows)[0].history_bytes == 4096

    def test_unowned_collapse_into_unknown_pane(self) -> None:
        """All unattributed processes share the "?" pane."""
        rows = [
            make_record(pid=8, target="?", swap=1),
            make_record(pid=9, target="?", swap=2),
            make_record(pid=10, target="s:1.0", swap=0),
        ]
        panes = aggregate_by_pane(rows)
        unknown = next(p for p in panes if p.target == "?")
        assert unknown.pids == (8, 9)
        assert unknown.swap_bytes == 3
        assert unknown.history_size == UNKNOWN_HISTORY
        assert unknown.history_lines is None

    def test_pids_in_record_order(self) -> None:
        rows = [make_record(pid=pid) for pid in (30, 10, 20)]
        assert aggregate_by_pane(rows)[0].pids == (30, 10, 20)

    def test_sum_preserving_per_group(self) -> None:
        """Each group's memory equals the sum of its members."""
        targets = ["a:1.0", "b:1.0", "c:1.0", "?"]
        rows = [
            make_record(
                pid=pid,
                target=targets[pid % 4],
                swap=pid * 7,
                physical=pid * 11,
                resident=pid * 13,
            )
            for pid in range(1, 30)
        ]
        for pane in aggregate_by_pane(rows):
            members = [r for r in rows if r.target == pane.target]
            assert pane.swap_bytes == sum(r.swap_bytes for r in members)
            assert pane.physical_bytes == sum(r.physical_bytes for r in members)
            assert pane.resident_bytes == sum(r.resident_bytes for r in members)
            assert pane.process_count == len(members)

    def test_output_sorted(self) -> None:
        rows = [
            make_record(pid=1, target="a:1.0", swap=1),
            make_record(pid=2, target="b:1.0", swap=5),
            make_record(pid=3, target="c:1.0", swap=5, physical=1),
        ]
        assert [p.target for p in aggregate_by_pane(rows)] == ["c:1.0", "b:1.0", "a:1.0"]

    def test_saturating_sum(self) -> None:
        """Sums clamp at the maximum byte count instead of growing past it."""
        rows = [
            make_record(pid=1, swap=MAX_BYTES - 5),
            make_record(pid=2, swap=100),
        ]
        assert aggregate_by_pane(rows)[0].swap_bytes == MAX_BYTES

    def test_empty(self) -> None:
        assert aggregate_by_pane([]) == []


def test_saturating_add() -> None:
    assert saturating_add(1, 2) == 3
    assert saturating_add(MAX_BYTES, 1) == MAX_BYTES


class TestTotals:
    """Tests for report totals."""

    def test_process_totals_count_pane_history_once(self) -> None:
        """History bytes are counted once per pane in the process view."""
        rows = [
            make_record(pid=1, swap=1, physical=2, resident=3, history_bytes=1000),
            make_record(pid=2, swap=1, physical=2, resident=3, history_bytes=900),
            make_record(pid=3, target="s:2.0", history_bytes=50),
            make_record(pid=4, target="?"),
        ]
        totals = process_totals(rows)
        assert totals.swap_bytes == 2
        assert totals.physical_bytes == 4
        assert totals.resident_bytes == 6
        assert totals.history_bytes == 1050

    def test_pane_totals(self) -> None:
        rows = [
            PaneRecord(target="a", window_name="a", swap_bytes=1, history_bytes=10),
            PaneRecord(target="b", window_name="b", swap_bytes=2, history_bytes=20),
        ]
        totals = pane_totals(rows)
        assert totals.swap_bytes == 3
        assert totals.history_bytes == 30
