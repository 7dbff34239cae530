"""Collectors for tmux panes, the process table and per-process memory.

Everything here talks to the outside world (tmux, vmmap, psutil). The
per-process lookups are best effort: failures come back as 0 or a sentinel
instead of raising, so one unreadable process never aborts a report.
"""

import subprocess
import sys

import psutil
import structlog

from tmux_mem.formatting import parse_size_token
from tmux_mem.models import UNAVAILABLE_COMMAND, PaneHandle

log = structlog.get_logger()

# tmux list-panes format: one tab-separated line per pane
PANE_FORMAT = (
    "#{session_name}:#{window_index}.#{pane_index}\t#{window_name}\t#{pane_pid}"
    "\t#{history_size}\t#{history_limit}"
)

MATCH_MODES = ("exact", "full")


class TmuxMemError(Exception):
    """Base error for tmux-mem."""


class CommandError(TmuxMemError):
    """An external command could not be run or exited non-zero."""


class PanesUnavailable(TmuxMemError):
    """The tmux pane snapshot could not be obtained."""


class ProcessDiscoveryError(TmuxMemError):
    """The process table could not be scanned."""


def run_command(args: list[str], timeout: float | None = None) -> str:
    """Run a command and return its stdout as text.

    Raises:
        CommandError: Binary missing, timed out, or non-zero exit status.
    """
    try:
        completed = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,  # No tty interaction
            capture_output=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise CommandError(f"{args[0]}: {e}") from e

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise CommandError(f"command failed: {' '.join(args)} => {stderr}")
    return completed.stdout.decode("utf-8", errors="replace")


# ─────────────────────────────────────────────────────────────────────────────
# tmux
# ─────────────────────────────────────────────────────────────────────────────


def _parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_pane_listing(text: str) -> list[PaneHandle]:
    """Parse `tmux list-panes -F PANE_FORMAT` output.

    Lines with an empty target or a non-positive pane pid are dropped.
    Unparseable numbers read as 0.
    """
    panes: list[PaneHandle] = []
    for line in text.splitlines():
        parts = line.split("\t")
        parts += [""] * (5 - len(parts))
        target, window_name, pane_pid, history_size, history_limit = parts[:5]
        root_pid = _parse_int(pane_pid)
        if not target or root_pid <= 0:
            continue
        panes.append(
            PaneHandle(
                target=target,
                window_name=window_name,
                root_pid=root_pid,
                history_size=_parse_int(history_size),
                history_limit=_parse_int(history_limit),
            )
        )
    return panes


def list_panes(timeout: float | None = None) -> list[PaneHandle]:
    """Snapshot every pane on the tmux server.

    Raises:
        PanesUnavailable: tmux is missing or no server is running.
    """
    try:
        raw = run_command(["tmux", "list-panes", "-a", "-F", PANE_FORMAT], timeout=timeout)
    except CommandError as e:
        raise PanesUnavailable(str(e)) from e
    panes = parse_pane_listing(raw)
    log.debug("panes_listed", count=len(panes))
    return panes


def capture_pane_bytes(target: str, timeout: float | None = None) -> int:
    """Estimate scrollback size as the byte length of the full pane capture.

    Raises:
        CommandError: capture-pane failed.
    """
    out = run_command(
        ["tmux", "capture-pane", "-p", "-S", "-", "-E", "-", "-t", target],
        timeout=timeout,
    )
    return len(out.encode("utf-8"))


# ─────────────────────────────────────────────────────────────────────────────
# Process discovery
# ─────────────────────────────────────────────────────────────────────────────


def discover_pids(pattern: str, match_mode: str = "exact") -> list[int]:
    """Find pids of processes matching pattern.

    Args:
        pattern: Process name (exact) or command line substring (full)
        match_mode: "exact" compares the process name, "full" searches the
            joined command line

    Returns:
        De-duplicated pids in ascending order. No matches is an empty list.

    Raises:
        ValueError: Unknown match_mode.
        ProcessDiscoveryError: The process table could not be read.
    """
    if match_mode not in MATCH_MODES:
        raise ValueError(f"Unknown match mode: {match_mode!r}. Valid modes: {list(MATCH_MODES)}")

    own_pid = psutil.Process().pid
    pids: set[int] = set()
    try:
        for proc in psutil.process_iter(["pid", "name", "cmdline"]):
            info = proc.info
            pid = info.get("pid") or 0
            if pid <= 0 or pid == own_pid:
                continue
            if match_mode == "exact":
                matched = info.get("name") == pattern
            else:
                cmdline = " ".join(info.get("cmdline") or [])
                matched = pattern in cmdline
            if matched:
                pids.add(pid)
    except (psutil.Error, OSError) as e:
        raise ProcessDiscoveryError(f"failed to scan process table: {e}") from e

    log.debug("pids_discovered", pattern=pattern, match_mode=match_mode, count=len(pids))
    return sorted(pids)


# ─────────────────────────────────────────────────────────────────────────────
# Per-process memory
# ─────────────────────────────────────────────────────────────────────────────


def parse_vmmap_summary(text: str) -> tuple[int, int]:
    """Extract (swapped bytes, physical footprint bytes) from `vmmap -summary`.

    Physical footprint comes from the "Physical footprint:" line. Swapped
    bytes are the fifth column of the first TOTAL row that is not the
    "TOTAL, minus reserved VM space" row.
    """
    swap_bytes = 0
    physical_bytes = 0
    for line in text.splitlines():
        t = line.lstrip()
        if t.startswith("Physical footprint:"):
            value = t.split(":", 1)[1].split()
            physical_bytes = parse_size_token(value[0] if value else "0B")
        if t.startswith("TOTAL") and "minus reserved" not in t:
            cols = t.split()
            if len(cols) >= 5:
                swap_bytes = parse_size_token(cols[4])
            break
    return swap_bytes, physical_bytes


def vmmap_memory(pid: int, timeout: float | None = None) -> tuple[int, int]:
    """(swap, physical footprint) for pid via macOS vmmap."""
    return parse_vmmap_summary(run_command(["vmmap", "-summary", str(pid)], timeout=timeout))


def psutil_memory(pid: int) -> tuple[int, int]:
    """(swap, unique set size) for pid via psutil, for platforms without vmmap."""
    info = psutil.Process(pid).memory_full_info()
    return getattr(info, "swap", 0), getattr(info, "uss", 0)


class SystemProbe:
    """Per-process lookups against the live system.

    Each method returns the documented fallback (0, (0, 0) or
    UNAVAILABLE_COMMAND) when the process is gone, access is denied, or the
    external tool fails.
    """

    def __init__(self, timeout: float | None = None, platform: str | None = None):
        self.timeout = timeout
        self.platform = platform or sys.platform

    def parent_pid(self, pid: int) -> int:
        try:
            return psutil.Process(pid).ppid()
        except (psutil.Error, ValueError) as e:
            log.debug("ppid_lookup_failed", pid=pid, error=str(e))
            return 0

    def command(self, pid: int) -> str:
        try:
            proc = psutil.Process(pid)
            cmdline = proc.cmdline()
            return " ".join(cmdline) if cmdline else proc.name()
        except (psutil.Error, ValueError) as e:
            log.debug("command_lookup_failed", pid=pid, error=str(e))
            return UNAVAILABLE_COMMAND

    def resident_bytes(self, pid: int) -> int:
        try:
            return psutil.Process(pid).memory_info().rss
        except (psutil.Error, ValueError) as e:
            log.debug("rss_lookup_failed", pid=pid, error=str(e))
            return 0

    def memory_figures(self, pid: int) -> tuple[int, int]:
        """Return (swap_bytes, physical_bytes), or (0, 0) on failure."""
        try:
            if self.platform == "darwin":
                return vmmap_memory(pid, timeout=self.timeout)
            return psutil_memory(pid)
        except (CommandError, psutil.Error, ValueError) as e:
            log.debug("memory_lookup_failed", pid=pid, error=str(e))
            return 0, 0

    def history_bytes(self, target: str) -> int:
        """Scrollback byte estimate for a pane, or 0 on failure."""
        try:
            return capture_pane_bytes(target, timeout=self.timeout)
        except CommandError as e:
            log.debug("capture_pane_failed", target=target, error=str(e))
            return 0
