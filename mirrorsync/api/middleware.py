"""ASGI lifespan middleware managing the registry engine.

The registry table is created when the server starts and the engine's pool is
disposed when it stops, so each Granian worker owns its own connections.

Usage
-----
Register the middleware when creating the Falcon app::

    from mirrorsync.api.middleware import RegistryLifecycle

    app = falcon.asgi.App(middleware=[RegistryLifecycle(engine, table)])

"""

from __future__ import annotations

import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from mirrorsync.logging import get_logger, log_error, log_info
from mirrorsync.registry.storage import init_registry_storage

if typ.TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["RegistryLifecycle"]

logger = get_logger(__name__)


class RegistryLifecycle:
    """Falcon middleware preparing and releasing the registry database.

    Parameters
    ----------
    engine
        Async engine bound to the registry database.
    table
        Registry table created at startup when absent.

    """

    def __init__(self, engine: AsyncEngine, table: Table) -> None:
        """Initialize the middleware with an engine and the registry table."""
        self._engine = engine
        self._table = table

    async def process_startup(self, _scope: object, _event: object) -> None:
        """Create the registry table before the first request."""
        try:
            await init_registry_storage(self._engine, self._table)
        except SQLAlchemyError:
            log_error(
                logger,
                "Failed to prepare registry table %s",
                self._table.name,
                exc_info=True,
            )
            raise
        log_info(logger, "Registry table %s ready", self._table.name)

    async def process_shutdown(self, _scope: object, _event: object) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()
