"""Poll the trigger counter and reconcile when it moves."""

from __future__ import annotations

import asyncio
import typing as typ

from mirrorsync.logging import get_logger, log_info
from mirrorsync.reconcile.observability import ReconcileEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from mirrorsync.reconcile.reconciler import Reconciler
    from mirrorsync.registry.counter import TriggerCounter

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_S = 20.0


class CounterWatcher:
    """Compare the trigger counter with the last reconciled value.

    The watcher shares the reconciler's state, so the observed counter and
    the local mirror set are owned by the same single loop.
    """

    def __init__(
        self,
        counter: TriggerCounter,
        reconciler: Reconciler,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        sleep: cabc.Callable[[float], cabc.Awaitable[None]] = asyncio.sleep,
        event_logger: ReconcileEventLogger | None = None,
    ) -> None:
        """Bind the watcher to a counter, a reconciler and a poll interval."""
        self._counter = counter
        self._reconciler = reconciler
        self._state = reconciler.state
        self._interval_s = interval_s
        self._sleep = sleep
        self._event_logger = event_logger or ReconcileEventLogger()

    @property
    def reconciler(self) -> Reconciler:
        """Return the reconciler run on each change."""
        return self._reconciler

    @property
    def observed_count(self) -> int:
        """Return the counter value of the last completed pass."""
        return self._state.observed_count

    async def tick(self) -> bool:
        """Reconcile if the counter changed; return whether a pass ran.

        The observed value only advances after the pass returns, so a failed
        pass is retried on the next change detection rather than skipped.
        """
        current = await self._counter.read()
        if current == self._state.observed_count:
            self._event_logger.log_counter_unchanged(current)
            return False

        self._event_logger.log_counter_changed(self._state.observed_count, current)
        await self._reconciler.reconcile()
        self._state.observed_count = current
        log_info(logger, "Set observed counter to %d", current)
        return True

    async def run(self) -> None:
        """Run the watcher loop until cancelled or a tick fails."""
        while True:
            await self.tick()
            log_info(
                logger, "Sleeping %.1fs before checking for updates", self._interval_s
            )
            await self._sleep(self._interval_s)
