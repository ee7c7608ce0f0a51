"""Command line entry point for ftpsync.

Wires settings, connection resolution, the ftplib transport and the
put/get/delete operations together.
"""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Tuple, Type

import click

from ftpsync import __version__
from ftpsync.config.resolution import (
    ConnectionOverrides,
    ServerCredentials,
    ServerResource,
    resolve_connection,
)
from ftpsync.config.settings import SettingsManager, SyncSettings
from ftpsync.ftp.connection import FTPConnectionConfig, TransferBehavior, TransferMode
from ftpsync.ftp.exceptions import FTPError
from ftpsync.ftp.transport import FTPTransport
from ftpsync.sync.operations import DeleteOperation, GetOperation, PutOperation, SyncOperation
from ftpsync.sync.scheduler import TransferSummary
from ftpsync.utils.logging import setup_logging
from ftpsync.utils.threading import TaskStatus, ThreadedTask
from ftpsync.utils.validators import (
    validate_ftp_path,
    validate_host,
    validate_port,
    validate_timeout,
)

EXIT_FAILURES = 1
EXIT_CANCELLED = 130

POLL_SECONDS = 0.2


@dataclasses.dataclass
class CliContext:
    """Options shared by every subcommand."""
    settings: SyncSettings
    overrides: ConnectionOverrides
    quiet: bool = False


def sync_options(func: Callable) -> Callable:
    """Options common to put, get and delete."""
    options = [
        click.option("--server-path", "-s", help="Remote root directory"),
        click.option("--include", "-i", "includes", multiple=True, help="Include mask (repeatable)"),
        click.option("--exclude", "-x", "excludes", multiple=True, help="Exclude mask (repeatable)"),
        click.option(
            "--use-current-date-on-error",
            is_flag=True,
            default=None,
            help="Use the current time when a listing date cannot be parsed",
        ),
        click.option(
            "--mode",
            type=click.Choice([m.value for m in TransferMode], case_sensitive=False),
            help="Transfer mode",
        ),
        click.option(
            "--behavior",
            type=click.Choice([b.value for b in TransferBehavior], case_sensitive=False),
            help="Data connection behavior",
        ),
        click.option("--concurrency", type=click.IntRange(min=1), help="Concurrent transfers"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def transfer_options(func: Callable) -> Callable:
    """Options for put and get."""
    func = click.option(
        "--only-newer",
        is_flag=True,
        default=None,
        help="Only transfer files newer than the destination",
    )(func)
    func = click.argument("local_path", type=click.Path(file_okay=False), required=False)(func)
    return func


def _merge_settings(base: SyncSettings, **options) -> SyncSettings:
    """Overlay command line values that were actually given."""
    changes = {}
    mapping = {
        "server_path": "server_path",
        "includes": "includes",
        "excludes": "excludes",
        "use_current_date_on_error": "use_current_date_on_error",
        "only_newer": "only_newer",
        "mode": "transfer_mode",
        "behavior": "transfer_behavior",
        "concurrency": "concurrency_limit",
        "local_path": "local_path",
    }
    for option, field_name in mapping.items():
        value = options.get(option)
        if value is None or value == ():
            continue
        changes[field_name] = list(value) if isinstance(value, tuple) else value
    return dataclasses.replace(base, **changes)


def _build_transport(ctx: CliContext, settings: SyncSettings) -> FTPTransport:
    try:
        connection = resolve_connection(
            ctx.overrides,
            ServerResource(host=settings.host or None, port=settings.port),
            ServerCredentials(username=settings.username or None),
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    checks = (
        validate_host(connection.host),
        validate_port(connection.port),
        validate_timeout(settings.timeout),
        validate_ftp_path(settings.server_path),
    )
    for is_valid, error in checks:
        if not is_valid:
            raise click.UsageError(error)

    config = FTPConnectionConfig(
        host=connection.host,
        port=connection.port,
        username=connection.username,
        passive_mode=settings.passive_mode,
        timeout=settings.timeout,
        transfer_mode=settings.transfer_mode,
    )
    return FTPTransport(config, password=connection.password, verbose=settings.verbose)


def _bar_updater(operation: SyncOperation, bar) -> Callable[[], None]:
    shown = 0

    def tick() -> None:
        nonlocal shown
        percent = operation.get_progress()
        if percent is not None and percent > shown:
            bar.update(percent - shown)
            shown = percent

    return tick


def _run_operation(ctx: CliContext, operation: SyncOperation, label: str) -> None:
    """Run the operation on a worker thread, showing progress until it ends."""
    task = ThreadedTask(operation.execute, cancellation=operation.cancellation)
    task.start()

    try:
        if ctx.quiet:
            task.watch(POLL_SECONDS, lambda: None)
        else:
            with click.progressbar(length=100, label=label, file=sys.stderr) as bar:
                task.watch(POLL_SECONDS, _bar_updater(operation, bar))
    except KeyboardInterrupt:
        click.echo("Cancelling...", err=True)
        task.cancel()

    result = task.get_result()
    if result.status == TaskStatus.CANCELLED:
        click.echo("Operation cancelled.", err=True)
        sys.exit(EXIT_CANCELLED)
    if result.status == TaskStatus.FAILED:
        if isinstance(result.error, FTPError):
            raise click.ClickException(str(result.error))
        raise result.error

    _report(result.result)


def _report(summary: TransferSummary) -> None:
    stats = summary.to_dict()
    click.echo(
        f"Matched {stats['matched']}, completed {stats['successful']}, "
        f"failed {stats['failed']}, skipped {stats['skipped']} "
        f"({stats['bytes_transferred']} bytes)."
    )
    for path, message in stats["failures"]:
        click.echo(f"  {path}: {message}", err=True)
    if summary.has_failures:
        sys.exit(EXIT_FAILURES)


@click.group()
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings JSON file",
)
@click.option("--host", "-H", help="FTP server host name")
@click.option("--port", "-p", type=int, help="FTP server port")
@click.option("--user", "-u", help="User name")
@click.option("--password", envvar="FTPSYNC_PASSWORD", help="Password (or FTPSYNC_PASSWORD)")
@click.option("--verbose", "-v", is_flag=True, help="Log every request")
@click.option("--quiet", "-q", is_flag=True, help="Hide the progress bar")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="Also log to file")
@click.version_option(__version__)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    verbose: bool,
    quiet: bool,
    log_file: Optional[Path],
) -> None:
    """Synchronize a local directory with an FTP server."""
    settings = SyncSettings()
    if config_path:
        try:
            settings = SettingsManager(config_path).load(strict=True)
        except ValueError as e:
            raise click.UsageError(str(e))
    if verbose:
        settings = dataclasses.replace(settings, verbose=True)

    setup_logging(
        level=logging.DEBUG if settings.verbose else logging.INFO,
        log_file=log_file,
    )

    ctx.obj = CliContext(
        settings=settings,
        overrides=ConnectionOverrides(host=host, port=port, username=user, password=password),
        quiet=quiet,
    )


def _prepare(
    ctx: CliContext, operation_class: Type[SyncOperation], **options
) -> Tuple[SyncOperation, SyncSettings]:
    settings = _merge_settings(ctx.settings, **options)
    transport = _build_transport(ctx, settings)
    return operation_class(settings, transport), settings


@main.command()
@transfer_options
@sync_options
@click.pass_obj
def put(ctx: CliContext, **options) -> None:
    """Upload LOCAL_PATH to the server."""
    operation, settings = _prepare(ctx, PutOperation, **options)
    if not settings.local_path:
        raise click.UsageError("LOCAL_PATH is required")
    _run_operation(ctx, operation, "Sending")


@main.command()
@transfer_options
@sync_options
@click.pass_obj
def get(ctx: CliContext, **options) -> None:
    """Download the server tree into LOCAL_PATH."""
    operation, settings = _prepare(ctx, GetOperation, **options)
    if not settings.local_path:
        raise click.UsageError("LOCAL_PATH is required")
    _run_operation(ctx, operation, "Retrieving")


@main.command()
@sync_options
@click.pass_obj
def delete(ctx: CliContext, **options) -> None:
    """Delete matched files and directories from the server."""
    operation, _ = _prepare(ctx, DeleteOperation, **options)
    _run_operation(ctx, operation, "Deleting")


if __name__ == "__main__":
    main()
