"""Build mirrorsync services from validated settings.

The ingest runtime and the reconciler CLI share these builders so both
processes address the same registry table and trigger key.

Usage
-----
Build the reconciler side::

    from mirrorsync.factory import build_registry, build_watcher

    registry = build_registry(settings.store)
    watcher = build_watcher(settings.reconciler, registry.store)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from mirrorsync.config import mirror_command_config, notify_command
from mirrorsync.ingest.service import EventIngestor
from mirrorsync.mirror.executor import CommandMirrorExecutor
from mirrorsync.mirror.notifier import (
    CommandServiceNotifier,
    HttpServiceNotifier,
    NullServiceNotifier,
)
from mirrorsync.reconcile.reconciler import Reconciler
from mirrorsync.reconcile.watcher import CounterWatcher
from mirrorsync.registry.counter import TriggerCounter
from mirrorsync.registry.storage import build_registry_table
from mirrorsync.registry.store import RegistryStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncEngine

    from mirrorsync.config import ReconcilerSettings, StoreSettings
    from mirrorsync.mirror.notifier import ServiceNotifier

__all__ = [
    "RegistryHandle",
    "build_ingestor",
    "build_notifier",
    "build_registry",
    "build_watcher",
]


@dc.dataclass(frozen=True, slots=True)
class RegistryHandle:
    """Engine, table and store for one registry database."""

    engine: AsyncEngine
    table: Table
    store: RegistryStore


def build_registry(settings: StoreSettings) -> RegistryHandle:
    """Create the async engine and store described by ``settings``."""
    engine = create_async_engine(settings.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    table = build_registry_table(settings.table)
    store = RegistryStore(
        session_factory,
        table,
        trigger_key=settings.trigger_key,
        page_size=settings.page_size,
        max_pages=settings.max_pages,
    )
    return RegistryHandle(engine=engine, table=table, store=store)


def build_ingestor(store: RegistryStore) -> EventIngestor:
    """Return an ingestor writing to ``store``."""
    return EventIngestor(store, TriggerCounter(store))


def build_notifier(
    settings: ReconcilerSettings, env: cabc.Mapping[str, str]
) -> ServiceNotifier:
    """Select the notifier: HTTP when a URL is set, else the notify command."""
    if not settings.notify_enabled:
        return NullServiceNotifier()
    if settings.notify_url:
        return HttpServiceNotifier(
            settings.notify_url, timeout_s=settings.notify_timeout_s
        )
    return CommandServiceNotifier(notify_command(settings), env=env)


def build_watcher(
    settings: ReconcilerSettings,
    store: RegistryStore,
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> CounterWatcher:
    """Wire executor, notifier, reconciler and watcher for ``store``."""
    executor = CommandMirrorExecutor(mirror_command_config(settings), environ=environ)
    notifier = build_notifier(settings, executor.env)
    reconciler = Reconciler(store, executor, notifier)
    return CounterWatcher(
        TriggerCounter(store), reconciler, interval_s=float(settings.interval)
    )
