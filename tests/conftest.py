"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from mirrorsync.registry.storage import build_registry_table, init_registry_storage
from mirrorsync.registry.store import RegistryStore

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Table

REGISTRY_TABLE = "registry_test"


@pytest.fixture
def registry_table() -> Table:
    """Return a registry table bound to fresh metadata."""
    return build_registry_table(REGISTRY_TABLE)


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path, registry_table: Table
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'mirrorsync_test.db'}",
        poolclass=NullPool,
    )
    try:
        await init_registry_storage(engine, registry_table)
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession], registry_table: Table
) -> RegistryStore:
    """Return a registry store over the sqlite fixture database."""
    return RegistryStore(session_factory, registry_table)
