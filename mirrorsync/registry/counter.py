"""Trigger counter read and bump operations.

The trigger counter is the registry's logical version: the ingest service
bumps it after every durable mutation and the reconciler polls it to detect
change. Bumps use a compare-and-set on the trigger row, so concurrent ingest
requests cannot silently overwrite each other's increment; a writer that
keeps losing the race gives up with :class:`CounterConflictError`.
"""

from __future__ import annotations

import typing as typ

from mirrorsync.logging import get_logger, log_info
from mirrorsync.registry.errors import CounterConflictError
from mirrorsync.registry.models import TriggerRecord

if typ.TYPE_CHECKING:
    from mirrorsync.registry.store import RegistryStore

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class TriggerCounter:
    """Read and increment the trigger row of a :class:`RegistryStore`."""

    def __init__(
        self, store: RegistryStore, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS
    ) -> None:
        """Bind the counter to ``store``."""
        self._store = store
        self._max_attempts = max_attempts

    async def read(self) -> int:
        """Return the current counter value; an absent trigger row reads as 0."""
        record = await self._load()
        return 0 if record is None else record.count

    async def bump(self) -> int:
        """Increment the counter and return the value written.

        Raises
        ------
        CounterConflictError
            If every compare-and-set attempt lost to a concurrent writer.
        RegistryUnavailableError
            If the store cannot be read or written.

        """
        for _ in range(self._max_attempts):
            current = await self._load()
            new_count = (0 if current is None else current.count) + 1
            if await self._store.compare_and_set_count(current, new_count):
                log_info(logger, "Trigger counter bumped to %d", new_count)
                return new_count
        raise CounterConflictError(self._max_attempts)

    async def _load(self) -> TriggerRecord | None:
        record = await self._store.get(self._store.trigger_key)
        if isinstance(record, TriggerRecord):
            return record
        return None
