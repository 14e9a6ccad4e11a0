"""Trigger-counter driven reconciliation of local mirrors.

Usage
-----
Poll the registry and reconcile on change::

    reconciler = Reconciler(store, CommandMirrorExecutor(), notifier)
    watcher = CounterWatcher(TriggerCounter(store), reconciler, interval_s=20)
    await watcher.run()

"""

from mirrorsync.reconcile.observability import (
    ErrorCategory,
    ReconcileEventLogger,
    ReconcileEventType,
    categorize_error,
)
from mirrorsync.reconcile.reconciler import (
    ReconcilePlan,
    Reconciler,
    ReconcileResult,
    RepoFailure,
)
from mirrorsync.reconcile.state import ReconcilerState
from mirrorsync.reconcile.watcher import CounterWatcher

__all__ = [
    "CounterWatcher",
    "ErrorCategory",
    "ReconcileEventLogger",
    "ReconcileEventType",
    "ReconcilePlan",
    "ReconcileResult",
    "Reconciler",
    "ReconcilerState",
    "RepoFailure",
    "categorize_error",
]
