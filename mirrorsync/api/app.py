"""Application factory for the mirrorsync Falcon ASGI application.

This module provides ``create_app()`` which builds the ingest service with
health endpoints and, when an ingestor is available, the webhook endpoints
that write the registry.

Usage
-----
Create a health-only app (no registry)::

    app = create_app()

Create a full app with webhook endpoints::

    from mirrorsync.api.app import AppDependencies, create_app

    deps = AppDependencies(ingestor=EventIngestor(store, TriggerCounter(store)))
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from mirrorsync.api.errors import register_error_handlers
from mirrorsync.api.health.resources import HealthResource, ReadyResource
from mirrorsync.api.hooks.resources import ChangeResource
from mirrorsync.ingest.events import ChangeOperation

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from mirrorsync.ingest.service import EventIngestor

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    ingestor
        Applies webhook changes; enables ``/hook`` and ``/delete`` when set.
    ready_probe
        Awaitable check run by ``/ready``; typically a counter read.
    middleware
        Falcon middleware components, such as ``RegistryLifecycle``.

    """

    ingestor: EventIngestor | None = None
    ready_probe: cabc.Callable[[], cabc.Awaitable[object]] | None = None
    middleware: tuple[object, ...] = ()


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None``, only ``/``,
        ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    app = falcon.asgi.App(middleware=list(deps.middleware))  # type: ignore[no-matching-overload]  # Falcon stubs

    health = HealthResource()
    app.add_route("/", health)
    app.add_route("/health", health)
    app.add_route("/ready", ReadyResource(deps.ready_probe))

    if deps.ingestor is not None:
        app.add_route("/hook", ChangeResource(deps.ingestor, ChangeOperation.CREATE))
        app.add_route("/delete", ChangeResource(deps.ingestor, ChangeOperation.DELETE))

    register_error_handlers(app)
    return app
