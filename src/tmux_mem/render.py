"""Render process and pane reports as table, JSON, CSV, YAML or Markdown."""

import csv
import io
import json
from collections.abc import Sequence
from enum import Enum

import yaml

from tmux_mem.aggregate import Totals, pane_totals, process_totals
from tmux_mem.formatting import format_bytes
from tmux_mem.models import PaneRecord, ProcessRecord


class OutputFormat(Enum):
    """Output formats for stdout and export files."""

    TABLE = "table"
    JSON = "json"
    CSV = "csv"
    YAML = "yaml"
    MARKDOWN = "markdown"


class ViewMode(Enum):
    """Report granularity: one row per process or one row per pane."""

    PROCESS = "process"
    PANE = "pane"


FORMAT_ALIASES = {
    "table": OutputFormat.TABLE,
    "json": OutputFormat.JSON,
    "csv": OutputFormat.CSV,
    "yaml": OutputFormat.YAML,
    "yml": OutputFormat.YAML,
    "markdown": OutputFormat.MARKDOWN,
    "md": OutputFormat.MARKDOWN,
}

# Suffix -> format for export paths
_SUFFIX_FORMATS = [
    (".json", OutputFormat.JSON),
    (".csv", OutputFormat.CSV),
    (".yaml", OutputFormat.YAML),
    (".yml", OutputFormat.YAML),
    (".md", OutputFormat.MARKDOWN),
    (".markdown", OutputFormat.MARKDOWN),
]


def parse_format(value: str) -> OutputFormat:
    """Parse a format name (case-insensitive, accepts yml/md aliases)."""
    fmt = FORMAT_ALIASES.get(value.lower())
    if fmt is None:
        raise ValueError(f"unsupported format: {value}")
    return fmt


def parse_view_mode(value: str) -> ViewMode:
    """Parse a view mode name (case-insensitive)."""
    try:
        return ViewMode(value.lower())
    except ValueError:
        raise ValueError(f"unsupported view mode: {value}") from None


def infer_format_from_path(path: str) -> OutputFormat | None:
    """Guess the export format from a file extension, or None if unknown."""
    lower = str(path).lower()
    for suffix, fmt in _SUFFIX_FORMATS:
        if lower.endswith(suffix):
            return fmt
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Columns
# ─────────────────────────────────────────────────────────────────────────────

PROCESS_HEADERS = [
    "PID",
    "Tmux window.pane",
    "Window",
    "Swap",
    "Physical",
    "RSS",
    "PaneHistory",
    "History lines",
    "Command",
]
PROCESS_ALIGN = ["---:", "---", "---", "---:", "---:", "---:", "---:", "---:", "---"]

PANE_HEADERS = [
    "Tmux window.pane",
    "Window",
    "Processes",
    "PIDs",
    "Swap",
    "Physical",
    "RSS",
    "PaneHistory",
    "History lines",
]
PANE_ALIGN = ["---", "---", "---:", "---", "---:", "---:", "---:", "---:", "---:"]


def _process_cells(row: ProcessRecord) -> list[str]:
    return [
        str(row.pid),
        row.target,
        row.window_name,
        format_bytes(row.swap_bytes),
        format_bytes(row.physical_bytes),
        format_bytes(row.resident_bytes),
        format_bytes(row.history_bytes),
        row.history_lines or "-",
        row.command,
    ]


def _pane_cells(row: PaneRecord) -> list[str]:
    return [
        row.target,
        row.window_name,
        str(row.process_count),
        ",".join(str(pid) for pid in row.pids),
        format_bytes(row.swap_bytes),
        format_bytes(row.physical_bytes),
        format_bytes(row.resident_bytes),
        format_bytes(row.history_bytes),
        row.history_lines or "-",
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Shared writers
# ─────────────────────────────────────────────────────────────────────────────


def _totals_lines(totals: Totals) -> list[str]:
    return [
        f"Total swap:\t{format_bytes(totals.swap_bytes)}",
        f"Total physical:\t{format_bytes(totals.physical_bytes)}",
        f"Total RSS:\t{format_bytes(totals.resident_bytes)}",
        f"Total pane history bytes:\t{format_bytes(totals.history_bytes)}",
    ]


def _table(headers: list[str], rows: list[list[str]], totals: Totals) -> str:
    lines = ["\t".join(headers)]
    lines += ["\t".join(cells) for cells in rows]
    lines.append("")
    lines += _totals_lines(totals)
    return "\n".join(lines) + "\n"


def _markdown_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


def _markdown(headers: list[str], align: list[str], rows: list[list[str]], totals: Totals) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join(align) + "|",
    ]
    for cells in rows:
        lines.append("| " + " | ".join(_markdown_cell(c) for c in cells) + " |")
    lines.append("")
    lines += _totals_lines(totals)
    return "\n".join(lines) + "\n"


def _json(rows: list[dict]) -> str:
    return json.dumps(rows, indent=2, ensure_ascii=False) + "\n"


def _csv(rows: list[dict], fieldnames: list[str]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        flat = dict(row)
        if isinstance(flat.get("pids"), list):
            flat["pids"] = ",".join(str(pid) for pid in flat["pids"])
        if flat.get("pane_history_lines") is None:
            flat["pane_history_lines"] = ""
        writer.writerow(flat)
    return buf.getvalue()


def _yaml(rows: list[dict]) -> str:
    return yaml.safe_dump(
        rows,
        explicit_start=True,
        sort_keys=False,
        default_flow_style=None,
        allow_unicode=True,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Entry points
# ─────────────────────────────────────────────────────────────────────────────

PROCESS_FIELDS = list(ProcessRecord(0, "", 0, 0, 0).to_dict())
PANE_FIELDS = list(PaneRecord("", "").to_dict())


def render_processes(rows: Sequence[ProcessRecord], fmt: OutputFormat) -> str:
    """Render the process view. Totals follow the table and Markdown forms only."""
    if fmt is OutputFormat.TABLE:
        return _table(PROCESS_HEADERS, [_process_cells(r) for r in rows], process_totals(rows))
    if fmt is OutputFormat.MARKDOWN:
        cells = [_process_cells(r) for r in rows]
        return _markdown(PROCESS_HEADERS, PROCESS_ALIGN, cells, process_totals(rows))
    dicts = [r.to_dict() for r in rows]
    if fmt is OutputFormat.JSON:
        return _json(dicts)
    if fmt is OutputFormat.CSV:
        return _csv(dicts, PROCESS_FIELDS)
    if fmt is OutputFormat.YAML:
        return _yaml(dicts)
    raise ValueError(f"Unknown format: {fmt!r}")


def render_panes(rows: Sequence[PaneRecord], fmt: OutputFormat) -> str:
    """Render the pane view. Totals follow the table and Markdown forms only."""
    if fmt is OutputFormat.TABLE:
        return _table(PANE_HEADERS, [_pane_cells(r) for r in rows], pane_totals(rows))
    if fmt is OutputFormat.MARKDOWN:
        cells = [_pane_cells(r) for r in rows]
        return _markdown(PANE_HEADERS, PANE_ALIGN, cells, pane_totals(rows))
    dicts = [r.to_dict() for r in rows]
    if fmt is OutputFormat.JSON:
        return _json(dicts)
    if fmt is OutputFormat.CSV:
        return _csv(dicts, PANE_FIELDS)
    if fmt is OutputFormat.YAML:
        return _yaml(dicts)
    raise ValueError(f"Unknown format: {fmt!r}")


def render(
    view: ViewMode,
    processes: Sequence[ProcessRecord],
    panes: Sequence[PaneRecord],
    fmt: OutputFormat,
) -> str:
    """Render whichever view was requested."""
    if view is ViewMode.PANE:
        return render_panes(panes, fmt)
    return render_processes(processes, fmt)
