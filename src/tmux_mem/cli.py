"""CLI commands for tmux-mem."""

import click

from tmux_mem import __version__

FORMAT_CHOICES = ["table", "json", "csv", "yaml", "yml", "markdown", "md"]


@click.group()
@click.version_option(__version__, prog_name="tmux-mem")
def main() -> None:
    """Inspect process memory and map PIDs to tmux panes."""
    pass


@main.command()
@click.option("--process", "-p", "pattern", default=None, help="Process pattern (default: opencode)")
@click.option(
    "--match-mode",
    "-m",
    type=click.Choice(["exact", "full"], case_sensitive=False),
    default=None,
    help="exact: process name equals pattern; full: pattern in command line",
)
@click.option(
    "--view",
    "-v",
    type=click.Choice(["process", "pane"], case_sensitive=False),
    default=None,
    help="One row per process or one row per tmux pane",
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Stdout format (default: table)",
)
@click.option("--export", "-o", "export_path", default=None, help="Also write the report to a file")
@click.option(
    "--export-format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Export format (default: inferred from extension, else json)",
)
@click.option(
    "--no-history-bytes",
    is_flag=True,
    help="Skip tmux capture-pane scrollback byte estimation",
)
@click.option("--verbose", is_flag=True, help="Log failed per-process lookups to the log file")
def report(
    pattern: str | None,
    match_mode: str | None,
    view: str | None,
    fmt: str | None,
    export_path: str | None,
    export_format: str | None,
    no_history_bytes: bool,
    verbose: bool,
) -> None:
    """Report memory per matched process, attributed to tmux panes."""
    from pathlib import Path

    from tmux_mem import logging as console
    from tmux_mem.collectors import ProcessDiscoveryError, SystemProbe, discover_pids
    from tmux_mem.config import Config
    from tmux_mem.render import (
        ViewMode,
        infer_format_from_path,
        parse_format,
        parse_view_mode,
        render,
    )
    from tmux_mem.report import collect_report, load_panes

    try:
        config = Config.load()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    pattern = pattern if pattern is not None else config.report.process
    match_mode = (match_mode or config.report.match_mode).lower()
    view_mode = parse_view_mode(view or config.report.view)
    stdout_format = parse_format(fmt or config.report.format)
    history_bytes = config.report.history_bytes and not no_history_bytes

    if not pattern:
        raise click.UsageError("--process requires a non-empty pattern")

    console.configure(config, verbose=verbose)

    timeout = config.system.command_timeout
    panes = load_panes(timeout=timeout)

    try:
        pids = discover_pids(pattern, match_mode)
    except ProcessDiscoveryError as e:
        console.discovery_failed(str(e))
        raise click.ClickException(f"failed to discover processes: {e}") from e

    if not pids:
        console.no_processes(pattern)

    result = collect_report(
        pids,
        panes,
        SystemProbe(timeout=timeout),
        history_bytes=history_bytes,
        max_hops=config.system.max_ancestry_hops,
    )

    click.echo(render(view_mode, result.processes, result.panes, stdout_format), nl=False)

    if export_path:
        if export_format:
            out_format = parse_format(export_format)
        else:
            out_format = infer_format_from_path(export_path) or parse_format(
                config.report.export_format
            )
        body = render(view_mode, result.processes, result.panes, out_format)
        try:
            Path(export_path).write_text(body, encoding="utf-8")
        except OSError as e:
            raise click.ClickException(f"failed writing export file '{export_path}': {e}") from e
        count = len(result.panes) if view_mode is ViewMode.PANE else len(result.processes)
        console.export_written(count, export_path)


@main.command()
def panes() -> None:
    """List tmux panes and their root processes."""
    from tmux_mem import logging as console
    from tmux_mem.collectors import PanesUnavailable, list_panes
    from tmux_mem.config import Config
    from tmux_mem.formatting import format_history_lines

    try:
        config = Config.load()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    console.configure(config)

    try:
        snapshot = list_panes(timeout=config.system.command_timeout)
    except PanesUnavailable as e:
        click.echo(f"Error: tmux panes unavailable: {e}", err=True)
        raise SystemExit(1)

    if not snapshot:
        click.echo("No tmux panes found.")
        return

    click.echo(f"{'Pane':20}  {'Window':20}  {'Root PID':>8}  {'History lines':>15}")
    click.echo("-" * 69)
    for pane in snapshot:
        lines = format_history_lines(pane.history_size, pane.history_limit) or "-"
        click.echo(
            f"{pane.target[:20]:20}  {pane.window_name[:20]:20}  {pane.root_pid:>8}  {lines:>15}"
        )


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    from tmux_mem.config import Config

    cfg = Config.load()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[report]")
    click.echo(f"  process = {cfg.report.process}")
    click.echo(f"  match_mode = {cfg.report.match_mode}")
    click.echo(f"  view = {cfg.report.view}")
    click.echo(f"  format = {cfg.report.format}")
    click.echo(f"  export_format = {cfg.report.export_format}")
    click.echo(f"  history_bytes = {str(cfg.report.history_bytes).lower()}")
    click.echo()
    click.echo("[system]")
    click.echo(f"  max_ancestry_hops = {cfg.system.max_ancestry_hops}")
    click.echo(f"  command_timeout = {cfg.system.command_timeout}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from tmux_mem import logging as console
    from tmux_mem.config import Config

    cfg = Config.load()

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        console.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from tmux_mem.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
