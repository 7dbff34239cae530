"""Resolve which tmux pane owns a process by walking its parent chain."""

from collections.abc import Callable, Iterable

import structlog

from tmux_mem.models import PaneHandle

log = structlog.get_logger()

# Hop limit for the parent walk. Real process trees are far shallower; this only
# stops a malformed (cyclic) parent table from looping forever.
MAX_ANCESTRY_HOPS = 512


class ParentCache:
    """Memoized pid -> parent pid lookups for one run.

    Failed lookups are stored as 0 so they are not retried and so the walk
    terminates at them.
    """

    def __init__(self, lookup: Callable[[int], int]):
        self._lookup = lookup
        self._parents: dict[int, int] = {}

    def __contains__(self, pid: int) -> bool:
        return pid in self._parents

    def __len__(self) -> int:
        return len(self._parents)

    def parent_of(self, pid: int) -> int:
        """Return the parent pid of pid, calling the lookup at most once per pid."""
        if pid in self._parents:
            return self._parents[pid]
        try:
            ppid = self._lookup(pid)
        except Exception as e:
            log.debug("parent_lookup_failed", pid=pid, error=str(e))
            ppid = 0
        self._parents[pid] = ppid
        return ppid


def index_panes(panes: Iterable[PaneHandle]) -> dict[int, PaneHandle]:
    """Map root pid -> pane. The first pane listed wins on duplicate root pids."""
    by_root: dict[int, PaneHandle] = {}
    for pane in panes:
        by_root.setdefault(pane.root_pid, pane)
    return by_root


def find_owning_pane(
    pid: int,
    pane_by_root_pid: dict[int, PaneHandle],
    parent_cache: ParentCache,
    max_hops: int = MAX_ANCESTRY_HOPS,
) -> PaneHandle | None:
    """Find the pane whose root process is pid or one of its ancestors.

    Args:
        pid: Process to attribute
        pane_by_root_pid: Pane snapshot keyed by root pid (see index_panes)
        parent_cache: Per-run parent lookup cache, filled as a side effect
        max_hops: Give up after this many parent links

    Returns:
        The owning pane, or None if the chain reaches pid 0 or the hop limit.
    """
    cur = pid
    hops = 0
    while cur > 0 and hops < max_hops:
        pane = pane_by_root_pid.get(cur)
        if pane is not None:
            return pane
        cur = parent_cache.parent_of(cur)
        hops += 1
    return None
