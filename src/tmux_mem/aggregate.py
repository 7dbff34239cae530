"""Ranking and per-pane aggregation of process records."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from tmux_mem.models import PaneRecord, ProcessRecord

# Byte counts are reported as unsigned 64-bit values
MAX_BYTES = 2**64 - 1


def saturating_add(a: int, b: int) -> int:
    """Add two byte counts, clamping at MAX_BYTES."""
    return min(a + b, MAX_BYTES)


# ─────────────────────────────────────────────────────────────────────────────
# Ranking
# ─────────────────────────────────────────────────────────────────────────────


def process_sort_key(record: ProcessRecord) -> tuple[int, int, int]:
    """Swap descending, then physical descending, then pid ascending."""
    return (-record.swap_bytes, -record.physical_bytes, record.pid)


def pane_sort_key(record: PaneRecord) -> tuple[int, int, str]:
    """Swap descending, then physical descending, then target ascending."""
    return (-record.swap_bytes, -record.physical_bytes, record.target)


def sort_processes(records: Iterable[ProcessRecord]) -> list[ProcessRecord]:
    """Return records with the most memory-hungry first."""
    return sorted(records, key=process_sort_key)


def sort_panes(records: Iterable[PaneRecord]) -> list[PaneRecord]:
    """Return pane records with the most memory-hungry first."""
    return sorted(records, key=pane_sort_key)


# ─────────────────────────────────────────────────────────────────────────────
# Aggregation
# ─────────────────────────────────────────────────────────────────────────────


def aggregate_by_pane(records: Iterable[ProcessRecord]) -> list[PaneRecord]:
    """Fold process records into one record per pane target.

    All unattributed processes share the "?" target and collapse into a single
    unknown pane. Memory is summed; history size, limit and bytes are pane
    properties, so each keeps the largest value seen instead of a sum.

    Returns:
        Pane records in ranking order (see pane_sort_key).
    """
    by_target: dict[str, PaneRecord] = {}
    for row in records:
        entry = by_target.get(row.target)
        if entry is None:
            entry = PaneRecord(
                target=row.target,
                window_name=row.window_name,
                history_size=row.history_size,
                history_limit=row.history_limit,
                history_bytes=row.history_bytes,
            )

        by_target[row.target] = replace(
            entry,
            pids=entry.pids + (row.pid,),
            swap_bytes=saturating_add(entry.swap_bytes, row.swap_bytes),
            physical_bytes=saturating_add(entry.physical_bytes, row.physical_bytes),
            resident_bytes=saturating_add(entry.resident_bytes, row.resident_bytes),
            history_size=max(entry.history_size, row.history_size),
            history_limit=max(entry.history_limit, row.history_limit),
            history_bytes=max(entry.history_bytes, row.history_bytes),
        )

    return sort_panes(by_target.values())


# ─────────────────────────────────────────────────────────────────────────────
# Totals
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Totals:
    """Report footer: memory summed over rows, history counted once per pane."""

    swap_bytes: int = 0
    physical_bytes: int = 0
    resident_bytes: int = 0
    history_bytes: int = 0


def process_totals(records: Sequence[ProcessRecord]) -> Totals:
    """Totals for the process view.

    Several processes can share a pane, so history bytes are taken once per
    distinct target (largest value seen) before summing.
    """
    unique_history: dict[str, int] = {}
    for row in records:
        unique_history[row.target] = max(unique_history.get(row.target, 0), row.history_bytes)
    return Totals(
        swap_bytes=sum(r.swap_bytes for r in records),
        physical_bytes=sum(r.physical_bytes for r in records),
        resident_bytes=sum(r.resident_bytes for r in records),
        history_bytes=sum(unique_history.values()),
    )


def pane_totals(records: Sequence[PaneRecord]) -> Totals:
    """Totals for the pane view. Each pane row is already unique."""
    return Totals(
        swap_bytes=sum(r.swap_bytes for r in records),
        physical_bytes=sum(r.physical_bytes for r in records),
        resident_bytes=sum(r.resident_bytes for r in records),
        history_bytes=sum(r.history_bytes for r in records),
    )
