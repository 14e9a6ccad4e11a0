"""Health probe resources for the ingest service.

``/`` and ``/health`` answer liveness without touching the registry, so a
load balancer keeps routing while the database is briefly unavailable.
``/ready`` additionally checks that the registry can be read when a probe
callable is supplied.

Usage
-----
Register health endpoints on the Falcon app::

    from mirrorsync.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(probe))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from mirrorsync.registry.errors import RegistryUnavailableError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET / and GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with liveness status.

        """
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Responds ``{"status": "ready"}`` when no probe is configured or the probe
    succeeds, and HTTP 503 when the registry is unavailable.
    """

    def __init__(
        self, probe: cabc.Callable[[], cabc.Awaitable[object]] | None = None
    ) -> None:
        """Store the optional registry probe."""
        self._probe = probe

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        if self._probe is not None:
            try:
                await self._probe()
            except RegistryUnavailableError as exc:
                resp.media = {"status": "unavailable", "description": str(exc)}
                resp.status = HTTPStatus.SERVICE_UNAVAILABLE
                return
        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK
