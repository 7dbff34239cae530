"""Configuration system for tmux-mem."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

from tmux_mem.ancestry import MAX_ANCESTRY_HOPS
from tmux_mem.collectors import MATCH_MODES
from tmux_mem.render import FORMAT_ALIASES, ViewMode


@dataclass
class ReportConfig:
    """Defaults for the report command. Command-line flags override these."""

    process: str = "opencode"  # Process name (exact) or command line substring (full)
    match_mode: str = "exact"  # "exact" or "full"
    view: str = "process"  # "process" or "pane"
    format: str = "table"  # table|json|csv|yaml|markdown
    export_format: str = "json"  # Used when an export path has no known extension
    history_bytes: bool = True  # Capture each pane once to estimate scrollback bytes


@dataclass
class SystemConfig:
    """Collection and logging configuration."""

    max_ancestry_hops: int = MAX_ANCESTRY_HOPS  # Parent links to follow before giving up
    command_timeout: float = 30.0  # Seconds per external command (tmux, vmmap)
    # Log file rotation
    log_max_bytes: int = 1024 * 1024  # Max log file size (1MB)
    log_backup_count: int = 2  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    report: ReportConfig = field(default_factory=ReportConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "tmux-mem"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "tmux-mem"

    @property
    def log_path(self) -> Path:
        """JSON lines log path."""
        return self.state_dir / "tmux-mem.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ["report", "system"]:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() agree when no file exists.

        Raises:
            ValueError: The file is not valid TOML or holds an invalid value.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            report=_load_report_config(data.get("report", {})),
            system=_load_system_config(data.get("system", {})),
        )


def _require_bool(name: str, value: object) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return bool(value)


def _require_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return int(value)


def _require_number(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


def _load_report_config(data: dict) -> ReportConfig:
    """Load report config from TOML data, using dataclass defaults for missing fields."""
    d = ReportConfig()
    valid_views = [v.value for v in ViewMode]

    match_mode = str(data.get("match_mode", d.match_mode)).lower()
    view = str(data.get("view", d.view)).lower()
    fmt = str(data.get("format", d.format)).lower()
    export_format = str(data.get("export_format", d.export_format)).lower()

    if match_mode not in MATCH_MODES:
        raise ValueError(f"Invalid match_mode: {match_mode!r}. Must be one of {list(MATCH_MODES)}")
    if view not in valid_views:
        raise ValueError(f"Invalid view: {view!r}. Must be one of {valid_views}")
    if fmt not in FORMAT_ALIASES:
        raise ValueError(f"Invalid format: {fmt!r}. Must be one of {list(FORMAT_ALIASES)}")
    if export_format not in FORMAT_ALIASES:
        raise ValueError(
            f"Invalid export_format: {export_format!r}. Must be one of {list(FORMAT_ALIASES)}"
        )

    return ReportConfig(
        process=str(data.get("process", d.process)),
        match_mode=match_mode,
        view=view,
        format=fmt,
        export_format=export_format,
        history_bytes=_require_bool(
            "history_bytes", data.get("history_bytes", d.history_bytes)
        ),
    )


def _load_system_config(data: dict) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()

    max_ancestry_hops = _require_int(
        "max_ancestry_hops", data.get("max_ancestry_hops", d.max_ancestry_hops)
    )
    command_timeout = _require_number(
        "command_timeout", data.get("command_timeout", d.command_timeout)
    )

    if max_ancestry_hops < 1:
        raise ValueError(f"max_ancestry_hops must be >= 1, got {max_ancestry_hops}")
    if command_timeout <= 0:
        raise ValueError(f"command_timeout must be > 0, got {command_timeout}")

    return SystemConfig(
        max_ancestry_hops=max_ancestry_hops,
        command_timeout=command_timeout,
        log_max_bytes=_require_int("log_max_bytes", data.get("log_max_bytes", d.log_max_bytes)),
        log_backup_count=_require_int(
            "log_backup_count", data.get("log_backup_count", d.log_backup_count)
        ),
    )
