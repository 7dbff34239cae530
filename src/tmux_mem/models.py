"""Data models for pane attribution reports.

PaneHandle comes from the tmux pane snapshot. ProcessRecord is one row per
matched process; PaneRecord is one row per pane after aggregation. All three
are immutable values that live for a single run.
"""

from dataclasses import dataclass, field

from tmux_mem.formatting import format_bytes, format_history_lines

# Sentinels for processes with no owning pane
UNKNOWN_TARGET = "?"
UNKNOWN_WINDOW = "?"
UNKNOWN_HISTORY = -1
UNAVAILABLE_COMMAND = "<unavailable>"


@dataclass(frozen=True)
class PaneHandle:
    """A tmux pane and the process tmux considers its root (usually a shell)."""

    target: str  # session:window.pane
    window_name: str
    root_pid: int
    history_size: int  # Lines of scrollback in use
    history_limit: int  # Configured scrollback limit, in lines


@dataclass(frozen=True)
class ProcessRecord:
    """Single matched process with memory figures and pane attribution."""

    # ─────────────────────────────────────────────────────────────
    # Identity
    # ─────────────────────────────────────────────────────────────
    pid: int
    command: str

    # ─────────────────────────────────────────────────────────────
    # Memory (bytes)
    # ─────────────────────────────────────────────────────────────
    swap_bytes: int
    physical_bytes: int
    resident_bytes: int

    # ─────────────────────────────────────────────────────────────
    # Pane attribution (copied from the owning PaneHandle)
    # ─────────────────────────────────────────────────────────────
    target: str = UNKNOWN_TARGET
    window_name: str = UNKNOWN_WINDOW
    history_size: int = UNKNOWN_HISTORY
    history_limit: int = UNKNOWN_HISTORY
    history_bytes: int = 0

    @classmethod
    def unowned(
        cls,
        pid: int,
        command: str,
        swap_bytes: int,
        physical_bytes: int,
        resident_bytes: int,
    ) -> "ProcessRecord":
        """Build a record for a process outside any tmux pane."""
        return cls(
            pid=pid,
            command=command,
            swap_bytes=swap_bytes,
            physical_bytes=physical_bytes,
            resident_bytes=resident_bytes,
            target=UNKNOWN_TARGET,
            window_name=UNKNOWN_WINDOW,
            history_size=UNKNOWN_HISTORY,
            history_limit=UNKNOWN_HISTORY,
            history_bytes=0,
        )

    @classmethod
    def attributed(
        cls,
        pid: int,
        command: str,
        swap_bytes: int,
        physical_bytes: int,
        resident_bytes: int,
        pane: PaneHandle | None,
        history_bytes: int = 0,
    ) -> "ProcessRecord":
        """Build a record, copying attribution from pane or using the unknown sentinel."""
        if pane is None:
            return cls.unowned(pid, command, swap_bytes, physical_bytes, resident_bytes)
        return cls(
            pid=pid,
            command=command,
            swap_bytes=swap_bytes,
            physical_bytes=physical_bytes,
            resident_bytes=resident_bytes,
            target=pane.target,
            window_name=pane.window_name,
            history_size=pane.history_size,
            history_limit=pane.history_limit,
            history_bytes=history_bytes,
        )

    @property
    def has_pane(self) -> bool:
        """True if an owning pane was found."""
        return self.history_size >= 0

    @property
    def history_lines(self) -> str | None:
        return format_history_lines(self.history_size, self.history_limit)

    def to_dict(self) -> dict:
        """Serialize to a flat row for JSON/CSV/YAML output."""
        return {
            "pid": self.pid,
            "tmux_target": self.target,
            "tmux_window": self.window_name,
            "swap_bytes": self.swap_bytes,
            "swap_human": format_bytes(self.swap_bytes),
            "physical_bytes": self.physical_bytes,
            "physical_human": format_bytes(self.physical_bytes),
            "rss_bytes": self.resident_bytes,
            "rss_human": format_bytes(self.resident_bytes),
            "pane_history_bytes": self.history_bytes,
            "pane_history_human": format_bytes(self.history_bytes),
            "pane_history_lines": self.history_lines,
            "command": self.command,
        }


@dataclass(frozen=True)
class PaneRecord:
    """Per-pane totals across all matched processes attributed to it.

    Memory fields are sums over member processes. History fields are pane
    properties shared by every member, so they hold the largest value seen.
    """

    target: str
    window_name: str
    pids: tuple[int, ...] = field(default_factory=tuple)
    swap_bytes: int = 0
    physical_bytes: int = 0
    resident_bytes: int = 0
    history_size: int = UNKNOWN_HISTORY
    history_limit: int = UNKNOWN_HISTORY
    history_bytes: int = 0

    @property
    def process_count(self) -> int:
        return len(self.pids)

    @property
    def history_lines(self) -> str | None:
        return format_history_lines(self.history_size, self.history_limit)

    def to_dict(self) -> dict:
        """Serialize to a flat row for JSON/CSV/YAML output."""
        return {
            "tmux_target": self.target,
            "tmux_window": self.window_name,
            "process_count": self.process_count,
            "pids": list(self.pids),
            "swap_bytes": self.swap_bytes,
            "swap_human": format_bytes(self.swap_bytes),
            "physical_bytes": self.physical_bytes,
            "physical_human": format_bytes(self.physical_bytes),
            "rss_bytes": self.resident_bytes,
            "rss_human": format_bytes(self.resident_bytes),
            "pane_history_bytes": self.history_bytes,
            "pane_history_human": format_bytes(self.history_bytes),
            "pane_history_lines": self.history_lines,
        }
