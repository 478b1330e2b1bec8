"""
FolderSync CLI Main Entry Point.

Validates the four startup parameters and runs the synchronization loop.
"""

from __future__ import annotations

import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from foldersync import __version__
from foldersync.core.config import LoggingConfig, SyncSettings, build_config
from foldersync.core.exceptions import ConfigValidationError, ScanFailure
from foldersync.core.logging import SyncLogger, setup_logging
from foldersync.core.models import ActionKind
from foldersync.core.scheduler import CancellationToken, Scheduler
from foldersync.sync.engine import SyncEngine

console = Console()

ACTION_STYLES = {
    ActionKind.COPY_NEW: "green",
    ActionKind.COPY_OVERWRITE: "yellow",
    ActionKind.DELETE: "red",
}


def print_error(message: str) -> None:
    console.print(message, style="red", markup=False, highlight=False, soft_wrap=True)


@contextmanager
def shutdown_on_signals(token: CancellationToken, sync_logger: SyncLogger) -> Iterator[None]:
    """Cancel ``token`` on SIGINT/SIGTERM for the duration of the block."""

    def handler(signum: int, frame: FrameType | None) -> None:
        if not token.is_cancelled:
            sync_logger.warning(
                f"Received {signal.Signals(signum).name}; stopping after the current file."
            )
        token.cancel()

    previous: dict[int, object] = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, handler)
        except ValueError:
            # Not the main thread; rely on the caller to cancel.
            pass
    try:
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)  # type: ignore[arg-type]


@click.command()
@click.version_option(version=__version__, prog_name="FolderSync")
@click.argument("source", type=click.Path(path_type=Path))
@click.argument("replica", type=click.Path(path_type=Path))
@click.argument("interval", type=int)
@click.argument("log_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option("--dry-run", is_flag=True, help="Show planned actions without executing them")
@click.option(
    "--exclude",
    "-e",
    "exclude_patterns",
    multiple=True,
    help="Glob pattern to ignore in both trees (repeatable)",
)
@click.option(
    "--verify-retries",
    type=click.IntRange(0, 10),
    default=None,
    help="Re-copy attempts after a failed post-copy verification",
)
@click.option("--digest-cache", is_flag=True, help="Reuse digests of files whose size and mtime are unchanged")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with optional sync settings",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Level of diagnostic logging on stderr",
)
@click.option("--json-logs", is_flag=True, help="Render diagnostic logs as JSON")
def cli(
    source: Path,
    replica: Path,
    interval: int,
    log_file: Path,
    once: bool,
    dry_run: bool,
    exclude_patterns: tuple[str, ...],
    verify_retries: int | None,
    digest_cache: bool,
    settings_path: Path | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """
    FolderSync - Mirror SOURCE into REPLICA every INTERVAL seconds.

    Every outcome is printed and appended to LOG_FILE.
    """
    try:
        settings = SyncSettings.load(settings_path)
    except (OSError, ValueError, ValidationError) as e:
        print_error(f"Invalid settings file {settings_path}: {e}")
        sys.exit(1)

    overrides: dict[str, object] = {}
    if exclude_patterns:
        overrides["exclude_patterns"] = [*settings.exclude_patterns, *exclude_patterns]
    if verify_retries is not None:
        overrides["verify_retries"] = verify_retries
    if digest_cache:
        overrides["digest_cache"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        config = build_config(
            source,
            replica,
            interval,
            log_file,
            settings=settings,
            logging=LoggingConfig(level=log_level.upper(), json_format=json_logs),
        )
    except ConfigValidationError as e:
        for error in e.errors:
            print_error(error)
        console.print(
            "Usage: foldersync SOURCE REPLICA INTERVAL LOG_FILE",
            markup=False,
            highlight=False,
        )
        sys.exit(1)

    setup_logging(config.logging)

    with SyncLogger(config.log_file, console=console) as sync_logger:
        token = CancellationToken()
        engine = SyncEngine(config, sync_logger, token=token)

        if dry_run:
            try:
                actions = engine.dry_run()
            except ScanFailure:
                sys.exit(1)
            table = Table(title="Planned Actions")
            table.add_column("Action", style="cyan")
            table.add_column("Path", style="white", overflow="fold")
            for action in actions:
                table.add_row(
                    f"[{ACTION_STYLES[action.kind]}]{action.kind.name}[/]",
                    action.relative_path,
                )
            console.print(table)
            return

        with shutdown_on_signals(token, sync_logger):
            if once:
                outcome = engine.run_cycle()
                if outcome.aborted or outcome.failed:
                    sys.exit(1)
                return

            sync_logger.info(
                f"Synchronizing {config.source} -> {config.replica} "
                f"every {config.interval_seconds} seconds."
            )
            scheduler = Scheduler(engine, config.interval_seconds, sync_logger, token=token)
            scheduler.run()
            sync_logger.info(f"Synchronization stopped after {scheduler.cycles_run} cycle(s).")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
