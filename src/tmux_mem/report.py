"""Build a memory report: discover processes, attribute them to panes, aggregate."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from tmux_mem import logging as console
from tmux_mem.aggregate import aggregate_by_pane, sort_processes
from tmux_mem.ancestry import MAX_ANCESTRY_HOPS, ParentCache, find_owning_pane, index_panes
from tmux_mem.collectors import PanesUnavailable, list_panes
from tmux_mem.models import PaneHandle, PaneRecord, ProcessRecord

log = structlog.get_logger()


class ProcessProbe(Protocol):
    """Per-process and per-pane lookups used while building a report."""

    def parent_pid(self, pid: int) -> int: ...

    def command(self, pid: int) -> str: ...

    def resident_bytes(self, pid: int) -> int: ...

    def memory_figures(self, pid: int) -> tuple[int, int]: ...

    def history_bytes(self, target: str) -> int: ...


class HistoryCache:
    """Scrollback byte estimates, measured at most once per pane per run.

    When disabled, every pane reads as 0 and the estimator is never called.
    """

    def __init__(self, estimator: Callable[[str], int], enabled: bool = True):
        self._estimator = estimator
        self.enabled = enabled
        self._bytes: dict[str, int] = {}

    def __contains__(self, target: str) -> bool:
        return target in self._bytes

    def measure(self, target: str) -> int:
        if not self.enabled:
            return 0
        if target not in self._bytes:
            try:
                self._bytes[target] = self._estimator(target)
            except Exception as e:
                log.debug("history_measure_failed", target=target, error=str(e))
                self._bytes[target] = 0
        return self._bytes[target]


@dataclass
class Report:
    """Process rows and pane rows from one snapshot, both in ranking order."""

    processes: list[ProcessRecord] = field(default_factory=list)
    panes: list[PaneRecord] = field(default_factory=list)


def load_panes(timeout: float | None = None) -> list[PaneHandle]:
    """Pane snapshot, or an empty one (with a warning) when tmux is unavailable.

    With no panes every process is reported under the unknown pane.
    """
    try:
        return list_panes(timeout=timeout)
    except PanesUnavailable as e:
        log.warning("panes_unavailable", error=str(e))
        console.panes_unavailable(str(e))
        return []


def build_record(
    pid: int,
    probe: ProcessProbe,
    pane_by_root_pid: dict[int, PaneHandle],
    parent_cache: ParentCache,
    history_cache: HistoryCache,
    max_hops: int = MAX_ANCESTRY_HOPS,
) -> ProcessRecord:
    """Collect memory figures for pid and attribute it to its owning pane."""
    command = probe.command(pid)
    resident = probe.resident_bytes(pid)
    swap, physical = probe.memory_figures(pid)

    pane = find_owning_pane(pid, pane_by_root_pid, parent_cache, max_hops=max_hops)
    history = history_cache.measure(pane.target) if pane is not None else 0

    return ProcessRecord.attributed(
        pid=pid,
        command=command,
        swap_bytes=swap,
        physical_bytes=physical,
        resident_bytes=resident,
        pane=pane,
        history_bytes=history,
    )


def collect_report(
    pids: Iterable[int],
    panes: Iterable[PaneHandle],
    probe: ProcessProbe,
    *,
    history_bytes: bool = True,
    max_hops: int = MAX_ANCESTRY_HOPS,
) -> Report:
    """Build process and pane records for the given pids.

    Args:
        pids: Matched process ids
        panes: Pane snapshot (may be empty)
        probe: Per-process lookups
        history_bytes: Measure pane scrollback bytes (one capture per pane)
        max_hops: Ancestry walk limit

    Returns:
        Report with both lists sorted by swap, physical, then pid/target.
    """
    pane_by_root_pid = index_panes(panes)
    parent_cache = ParentCache(probe.parent_pid)
    history_cache = HistoryCache(probe.history_bytes, enabled=history_bytes)

    records = [
        build_record(pid, probe, pane_by_root_pid, parent_cache, history_cache, max_hops)
        for pid in dict.fromkeys(pids)
    ]
    processes = sort_processes(records)
    pane_rows = aggregate_by_pane(processes)

    log.info(
        "report_collected",
        processes=len(processes),
        panes=len(pane_rows),
        parent_lookups=len(parent_cache),
    )
    return Report(processes=processes, panes=pane_rows)
