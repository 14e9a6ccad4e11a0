"""Command line entry point for mirrorsync.

Usage:
    mirrorsync serve                # Run the webhook ingest service
    mirrorsync reconcile            # Poll the trigger counter and reconcile
    mirrorsync reconcile --once     # Run a single reconciliation pass
    mirrorsync check-config         # Validate and summarise configuration
    mirrorsync --version

Every command accepts ``--config PATH``; otherwise ``MIRRORSYNC_CONFIG`` or
``/etc/mirrorsync.yml`` is used.
"""

from __future__ import annotations

import asyncio
import signal
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter
from sqlalchemy.exc import SQLAlchemyError

from mirrorsync import __version__
from mirrorsync.config import ConfigError, describe_settings, load_settings
from mirrorsync.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)
from mirrorsync.mirror.errors import MirrorError
from mirrorsync.mirror.gitconfig import write_git_credentials
from mirrorsync.registry.errors import RegistryError, RegistryUnavailableError
from mirrorsync.registry.storage import init_registry_storage

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from mirrorsync.config import Settings
    from mirrorsync.reconcile.watcher import CounterWatcher

__all__ = ["app", "main", "run_watcher"]

logger = get_logger(__name__)

app = App(
    name="mirrorsync",
    help="Keep local repository mirrors in step with a shared registry",
    version=__version__,
)

_TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)

ConfigOption = typ.Annotated[str | None, Parameter(name="--config")]


def _load(config: str | None) -> Settings | None:
    """Load settings and configure logging; return ``None`` on config errors."""
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        configure_logging("INFO", force=True)
        for issue in exc.issues:
            log_error(logger, "Invalid configuration: %s", issue)
        return None

    normalized_level, invalid_level = configure_logging(
        settings.log_level, force=True
    )
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            settings.log_level,
            normalized_level,
        )
    return settings


def _log_summary(settings: Settings) -> None:
    for line in describe_settings(settings):
        log_info(logger, "config: %s", line)


async def run_watcher(
    watcher: CounterWatcher,
    *,
    cleanup: cabc.Callable[[], cabc.Awaitable[None]],
    stop_event: asyncio.Event | None = None,
) -> int:
    """Run ``watcher`` until it fails or a termination signal arrives.

    The watcher task is cancelled without waiting for an in-flight pass and
    ``cleanup`` always runs. Both ways out are failures, so the result is 1.

    Parameters
    ----------
    watcher
        Watcher whose ``run()`` loop is supervised.
    cleanup
        Hook awaited before returning.
    stop_event
        Event that stops the watcher; when omitted, SIGINT and SIGTERM
        handlers setting a private event are installed.

    """
    loop = asyncio.get_running_loop()
    stop = stop_event if stop_event is not None else asyncio.Event()
    if stop_event is None:
        for signum in _TERMINATION_SIGNALS:
            loop.add_signal_handler(signum, stop.set)

    watch_task = asyncio.create_task(watcher.run(), name="counter-watcher")
    stop_task = asyncio.create_task(stop.wait(), name="termination-signal")
    try:
        done, _ = await asyncio.wait(
            {watch_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if watch_task in done:
            if (exc := watch_task.exception()) is not None:
                log_exception(logger, f"Reconciler stopped: {exc}", exc)
            else:
                log_warning(logger, "Reconciler loop exited")
        else:
            log_warning(logger, "Received termination signal, stopping reconciler")
    finally:
        for task in (watch_task, stop_task):
            task.cancel()
        await asyncio.gather(watch_task, stop_task, return_exceptions=True)
        if stop_event is None:
            for signum in _TERMINATION_SIGNALS:
                loop.remove_signal_handler(signum)
        log_info(logger, "Cleaning up before exit")
        await cleanup()
    return 1


async def _reconcile_async(settings: Settings, *, once: bool) -> int:
    from mirrorsync.factory import build_registry, build_watcher

    registry = build_registry(settings.store)
    watcher = build_watcher(settings.reconciler, registry.store)

    try:
        await init_registry_storage(registry.engine, registry.table)
    except SQLAlchemyError as exc:
        await registry.engine.dispose()
        raise RegistryUnavailableError("init") from exc

    if not once:
        return await run_watcher(watcher, cleanup=registry.engine.dispose)

    try:
        result = await watcher.reconciler.reconcile()
    except (RegistryError, MirrorError) as exc:
        log_error(logger, "Reconciliation failed: %s", exc)
        return 1
    finally:
        await registry.engine.dispose()

    failures = len(result.fetch_failures) + len(result.remove_failures)
    log_info(
        logger,
        "Single pass finished: %d fetched, %d removed, %d failed",
        len(result.fetched),
        len(result.removed),
        failures,
    )
    return 0


@app.command
def serve(*, config: ConfigOption = None) -> int:
    """Run the webhook ingest service.

    Args:
        config: Path to the YAML configuration file.

    Returns:
        Exit code (0 after a clean shutdown, 1 on configuration errors).

    """
    from mirrorsync.runtime import serve as serve_ingest

    settings = _load(config)
    if settings is None:
        return 1
    _log_summary(settings)
    serve_ingest(settings, config)
    return 0


@app.command
def reconcile(*, config: ConfigOption = None, once: bool = False) -> int:
    """Poll the trigger counter and reconcile local mirrors.

    Args:
        config: Path to the YAML configuration file.
        once: Run one reconciliation pass regardless of the counter and exit.

    Returns:
        Exit code (0 after a successful single pass, 1 otherwise).

    """
    settings = _load(config)
    if settings is None:
        return 1
    _log_summary(settings)

    reconciler_settings = settings.reconciler
    try:
        write_git_credentials(
            Path(reconciler_settings.gitconfig_path),
            reconciler_settings.github_pat,
            reconciler_settings.github_server,
        )
    except OSError as exc:
        log_error(
            logger,
            "Cannot write %s: %s",
            reconciler_settings.gitconfig_path,
            exc,
        )
        return 1

    try:
        return asyncio.run(_reconcile_async(settings, once=once))
    except RegistryError as exc:
        log_error(logger, "Registry setup failed: %s", exc)
        return 1


@app.command(name="check-config")
def check_config(*, config: ConfigOption = None) -> int:
    """Validate the configuration and print a redacted summary.

    Args:
        config: Path to the YAML configuration file.

    Returns:
        Exit code (0 when valid, 1 otherwise).

    """
    settings = _load(config)
    if settings is None:
        return 1
    for line in describe_settings(settings):
        print(line)
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
