"""Repository registry shared by the ingest service and the reconciler.

The registry is a key-value table of repository records plus one reserved
trigger row whose counter acts as the registry's logical version.

Usage
-----
Record a repository and publish the change::

    from mirrorsync.registry import RegistryStore, RepoRecord, TriggerCounter

    store = RegistryStore(session_factory, build_registry_table("registry"))
    await store.put(RepoRecord(repo="github.com/acme/widgets"))
    await TriggerCounter(store).bump()

"""

from mirrorsync.registry.counter import TriggerCounter
from mirrorsync.registry.errors import (
    CounterConflictError,
    RegistryError,
    RegistryUnavailableError,
)
from mirrorsync.registry.models import DEFAULT_TRIGGER_KEY, RepoRecord, TriggerRecord
from mirrorsync.registry.storage import build_registry_table, init_registry_storage
from mirrorsync.registry.store import RegistryStore

__all__ = [
    "DEFAULT_TRIGGER_KEY",
    "CounterConflictError",
    "RegistryError",
    "RegistryStore",
    "RegistryUnavailableError",
    "RepoRecord",
    "TriggerCounter",
    "TriggerRecord",
    "build_registry_table",
    "init_registry_storage",
]
