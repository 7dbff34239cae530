"""Shared test fixtures for tmux-mem."""

import logging
from pathlib import Path

import pytest
import structlog

from tmux_mem.models import PaneHandle, ProcessRecord


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir so config and log files never touch the real one."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo global logging configuration made by commands under test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def make_pane(
    target: str = "s:1.0",
    window_name: str = "w",
    root_pid: int = 100,
    history_size: int = 10,
    history_limit: int = 2000,
) -> PaneHandle:
    """Create a PaneHandle for testing."""
    return PaneHandle(
        target=target,
        window_name=window_name,
        root_pid=root_pid,
        history_size=history_size,
        history_limit=history_limit,
    )


def make_record(
    pid: int = 123,
    command: str = "opencode",
    swap: int = 0,
    physical: int = 0,
    resident: int = 0,
    target: str = "s:1.0",
    window_name: str = "w",
    history_size: int = 10,
    history_limit: int = 2000,
    history_bytes: int = 0,
) -> ProcessRecord:
    """Create a ProcessRecord for testing. target="?" gives an unowned record."""
    if target == "?":
        return ProcessRecord.unowned(pid, command, swap, physical, resident)
    return ProcessRecord(
        pid=pid,
        command=command,
        swap_bytes=swap,
        physical_bytes=physical,
        resident_bytes=resident,
        target=target,
        window_name=window_name,
        history_size=history_size,
        history_limit=history_limit,
        history_bytes=history_bytes,
    )


class FakeProbe:
    """In-memory stand-in for SystemProbe, counting lookups."""

    def __init__(
        self,
        parents: dict[int, int] | None = None,
        memory: dict[int, tuple[int, int]] | None = None,
        resident: dict[int, int] | None = None,
        commands: dict[int, str] | None = None,
        history: dict[str, int] | None = None,
    ):
        self.parents = parents or {}
        self.memory = memory or {}
        self.resident = resident or {}
        self.commands = commands or {}
        self.history = history or {}
        self.parent_calls: list[int] = []
        self.history_calls: list[str] = []

    def parent_pid(self, pid: int) -> int:
        self.parent_calls.append(pid)
        return self.parents.get(pid, 0)

    def command(self, pid: int) -> str:
        return self.commands.get(pid, "<unavailable>")

    def resident_bytes(self, pid: int) -> int:
        return self.resident.get(pid, 0)

    def memory_figures(self, pid: int) -> tuple[int, int]:
        return self.memory.get(pid, (0, 0))

    def history_bytes(self, target: str) -> int:
        self.history_calls.append(target)
        return self.history.get(target, 0)


@pytest.fixture
def fake_probe() -> FakeProbe:
    """Probe for a small tree: 100 (pane root) -> 200 -> 300, and 400 outside tmux."""
    return FakeProbe(
        parents={300: 200, 200: 100, 100: 1, 400: 1, 1: 0},
        memory={300: (100, 200), 200: (50, 70), 400: (10, 20)},
        resident={300: 300, 200: 90, 400: 40},
        commands={300: "opencode --serve", 200: "opencode", 400: "opencode run"},
        history={"s:1.0": 1000},
    )
