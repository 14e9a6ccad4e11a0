"""Persistence schema for the repository registry.

The registry is a single key-value table keyed by ``repo``. Repository rows
fill the commit columns; the reserved trigger row fills ``count`` only. The
table is built at runtime so deployments can choose its name, and it keeps to
portable SQLAlchemy types so the same code works with SQLite in tests and
PostgreSQL in production.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import Column, Integer, MetaData, String, Table, Text

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

DEFAULT_TABLE_NAME = "mirrorsync_registry"


def build_registry_table(
    name: str = DEFAULT_TABLE_NAME, metadata: MetaData | None = None
) -> Table:
    """Return the registry table definition bound to ``metadata``."""
    return Table(
        name,
        metadata or MetaData(),
        Column("repo", String(512), primary_key=True),
        Column("count", Integer, nullable=True),
        Column("last_commit_id", String(64), nullable=True),
        Column("last_commit_message", Text, nullable=True),
        Column("last_commit_user", String(255), nullable=True),
    )


async def init_registry_storage(engine: AsyncEngine, table: Table) -> None:
    """Create the registry table if it is absent."""
    async with engine.begin() as conn:
        await conn.run_sync(table.metadata.create_all, tables=[table])
