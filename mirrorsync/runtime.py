"""Ingest service runtime entrypoint.

This module provides the ASGI application factory used by Granian. It loads
settings from ``MIRRORSYNC_CONFIG`` (see :mod:`mirrorsync.config`), builds the
registry store and the ingestor, and delegates to
:func:`mirrorsync.api.app.create_app` for application construction while
keeping the ``mirrorsync.runtime:create_app`` Granian entrypoint stable.

Run the service with ``mirrorsync serve`` or ``python -m mirrorsync.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from mirrorsync.config import CONFIG_PATH_ENV, ConfigError, load_settings
from mirrorsync.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

    from mirrorsync.config import Settings

__all__ = ["create_app", "main", "serve"]

logger = get_logger(__name__)


def _load_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigError as exc:
        # Use error() not exception() - validation failures need no traceback
        for issue in exc.issues:
            log_error(logger, "Invalid configuration: %s", issue)
        raise SystemExit(1) from exc


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application with webhook endpoints.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    Raises
    ------
    SystemExit
        If the configuration is missing or invalid.

    """
    from mirrorsync.api.app import AppDependencies
    from mirrorsync.api.app import create_app as _create_api_app
    from mirrorsync.api.middleware import RegistryLifecycle
    from mirrorsync.factory import build_ingestor, build_registry
    from mirrorsync.registry.counter import TriggerCounter

    settings = _load_or_exit()
    registry = build_registry(settings.store)
    deps = AppDependencies(
        ingestor=build_ingestor(registry.store),
        ready_probe=TriggerCounter(registry.store).read,
        middleware=(RegistryLifecycle(registry.engine, registry.table),),
    )
    return _create_api_app(deps)


def serve(settings: Settings, config_path: str | None = None) -> None:
    """Start the ingest service on the configured address using Granian.

    ``config_path`` is exported as ``MIRRORSYNC_CONFIG`` so Granian workers
    load the same file through :func:`create_app`.
    """
    from granian import Granian
    from granian.constants import Interfaces

    if config_path is not None:
        os.environ[CONFIG_PATH_ENV] = config_path

    host = settings.ingest.host
    port = settings.ingest.port
    log_info(logger, "Starting mirrorsync ingest on %s:%d", host, port)

    server = Granian(
        "mirrorsync.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


def main() -> None:
    """Load settings, configure logging and serve the ingest API."""
    settings = _load_or_exit()
    normalized_level, invalid_level = configure_logging(settings.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            settings.log_level,
            normalized_level,
        )
    serve(settings)


if __name__ == "__main__":
    main()
