"""Command line interface for the AutoBackup service."""

from __future__ import annotations

import difflib
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from autobackup.archive.models import PassReport
from autobackup.config import AutoBackupConfig, ConfigError, ConfigManager, resolve_with_precedence
from autobackup.logs import configure_logging
from autobackup.watch import ArchiveService, PeriodicScheduler

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary: {parts}.[/green]"


def _directory_table(report: PassReport) -> Table:
    table = Table(title=f"Files older than {report.threshold:%Y-%m-%d %H:%M}")
    table.add_column("Folder")
    table.add_column("Status")
    table.add_column("Candidates", justify="right")
    table.add_column("Archives")
    for directory in report.directories:
        archives = ", ".join(
            f"{batch.archive_path.name} (+{batch.added_count})" for batch in directory.batches
        )
        table.add_row(str(directory.path), directory.status, str(directory.candidates), archives or "-")
    return table


def _emit_pass_report(
    report: PassReport,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render output for a completed scan pass."""

    if json_output:
        console.print_json(data=report.to_payload())
        return

    if report.directories:
        _emit_message(_directory_table(report), mode="detail", quiet=quiet, summary_only=summary_only)

    for directory in report.directories:
        if directory.status == "missing":
            _emit_message(
                f"[yellow]Folder {directory.path} does not exist.[/yellow]",
                mode="warning",
                quiet=quiet,
                summary_only=summary_only,
            )
        elif directory.status == "failed":
            _emit_message(
                f"[red]Folder {directory.path} failed: {directory.error}[/red]",
                mode="error",
                quiet=quiet,
                summary_only=summary_only,
            )

    metrics: dict[str, Any] = dict(report.counts())
    if report.cancelled:
        metrics["cancelled"] = True
    if report.dry_run:
        metrics["dry_run"] = True
    _emit_message(
        _format_summary_line("Archive", metrics),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


@contextmanager
def _stop_on_signals(stop_event: threading.Event) -> Iterator[None]:
    """Set ``stop_event`` on SIGINT/SIGTERM for the duration of the block."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _request_stop(signum: int, _frame: Any) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = child
    node[path[-1]] = value


def _manager(ctx: click.Context) -> ConfigManager:
    config_path = (ctx.obj or {}).get("config_path")
    return ConfigManager(config_path=Path(config_path) if config_path else None)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="autobackup")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=str),
    help="Configuration file to use instead of ~/.autobackup/config.yaml.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """Archive old files into per-year ZIP files on a schedule."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option(
    "--folder",
    "folders",
    multiple=True,
    type=click.Path(file_okay=False, path_type=str),
    help="Folder to monitor; repeat to replace the configured list.",
)
@click.option("--months", type=int, help="Override worker.file_age_months.")
@click.option("--interval-hours", type=int, help="Override worker.run_interval_hours.")
@click.option(
    "--delete/--keep",
    "delete_originals",
    default=None,
    help="Override worker.delete_original_file_after_zip.",
)
@click.option("--once", is_flag=True, help="Run a single pass and exit.")
@click.option("--dry-run", is_flag=True, help="Report what would be archived without writing archives.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing each pass.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def run(
    ctx: click.Context,
    folders: tuple[str, ...],
    months: int | None,
    interval_hours: int | None,
    delete_originals: bool | None,
    once: bool,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Archive old files now and then every configured interval until stopped.

    Args:
        ctx: Click context carrying the configuration path.
        folders: Folders overriding the configured list.
        months: Optional age threshold override.
        interval_hours: Optional scan period override.
        delete_originals: Optional deletion policy override.
        once: When True, run a single pass.
        dry_run: When True, skip archive writes and deletions.
        json_output: When True, emit JSON payloads instead of text.
        summary_mode: When True, restrict output to summary/warning lines.
        quiet: When True, suppress non-error output entirely.
    """

    overrides: dict[str, Any] = {}
    if folders:
        overrides["worker.folders_to_monitor"] = list(folders)
    if months is not None:
        overrides["worker.file_age_months"] = months
    if interval_hours is not None:
        overrides["worker.run_interval_hours"] = interval_hours
    if delete_originals is not None:
        overrides["worker.delete_original_file_after_zip"] = delete_originals

    try:
        config = _manager(ctx).load(cli_overrides=overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    quiet_enabled = quiet or config.cli.quiet_default
    summary_only = summary_mode or config.cli.summary_default
    if json_output and (quiet or summary_mode):
        raise click.ClickException("--json cannot be combined with --quiet or --summary.")
    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )

    configure_logging(config.logging)

    if not config.worker.folders_to_monitor:
        _emit_message(
            "[yellow]No folders configured; set worker.folders_to_monitor or pass --folder.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )

    service = ArchiveService(config, dry_run=dry_run)
    scheduler = PeriodicScheduler(
        service,
        interval_hours=config.worker.run_interval_hours,
        on_pass=lambda report: _emit_pass_report(
            report,
            json_output=json_output,
            quiet=quiet_enabled,
            summary_only=summary_only,
        ),
    )

    stop_event = threading.Event()
    if not once and not json_output:
        _emit_message(
            f"[cyan]Archiving every {config.worker.run_interval_hours}h. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    with _stop_on_signals(stop_event):
        scheduler.run(stop_event, max_passes=1 if once else None)


@cli.group()
def config() -> None:
    """Manage AutoBackup configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    try:
        effective = _manager(ctx).load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        ctx: Click context carrying the configuration path.
        key: Dotted path such as ``worker.file_age_months``.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = _manager(ctx)
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'worker.file_age_months'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=AutoBackupConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    # The timestamp line always changes; only report real value changes.
    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    changed = [
        line
        for line in diff[2:]
        if line.startswith(("+", "-")) and "Last updated" not in line
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
@click.pass_context
def config_edit(ctx: click.Context) -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = _manager(ctx)
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=AutoBackupConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
