"""Diff-and-apply reconciliation of local mirrors against the registry.

A pass lists the desired set, fetches every desired repository, then removes
the repositories the reconciler previously ensured but which have left the
registry. Fetching and removing are best-effort per repository: one failing
``go get`` never stops the others. Removal is destructive, so an unresolved
mirror root fails the whole removal phase before any command runs.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from mirrorsync.common.time import utcnow
from mirrorsync.mirror.errors import MirrorCommandError, UnsafeMirrorPathError
from mirrorsync.mirror.notifier import NullServiceNotifier
from mirrorsync.reconcile.observability import ReconcileEventLogger, ReconcileRunContext
from mirrorsync.reconcile.state import ReconcilerState

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from mirrorsync.mirror.executor import MirrorExecutor
    from mirrorsync.mirror.notifier import ServiceNotifier
    from mirrorsync.registry.store import RegistryStore

_PER_REPO_ERRORS = (MirrorCommandError, UnsafeMirrorPathError)


@dataclasses.dataclass(frozen=True, slots=True)
class ReconcilePlan:
    """Partition of one pass: what to fetch and what to remove."""

    to_fetch: tuple[str, ...]
    to_remove: tuple[str, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class RepoFailure:
    """A repository whose fetch or removal failed during a pass."""

    repo: str
    error: str


@dataclasses.dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Summary of a completed reconciliation pass."""

    plan: ReconcilePlan
    fetched: tuple[str, ...] = ()
    fetch_failures: tuple[RepoFailure, ...] = ()
    removed: tuple[str, ...] = ()
    remove_failures: tuple[RepoFailure, ...] = ()


class Reconciler:
    """Bring the local mirror set toward the registry's desired set.

    Parameters
    ----------
    store
        Registry holding the desired repository set.
    executor
        Runs fetch and remove commands.
    notifier
        Dependent service told about changes after each pass.
    state
        Local mirror set and observed counter; a fresh state when omitted.
    event_logger
        Structured event sink.

    """

    def __init__(  # noqa: PLR0913
        self,
        store: RegistryStore,
        executor: MirrorExecutor,
        notifier: ServiceNotifier | None = None,
        *,
        state: ReconcilerState | None = None,
        event_logger: ReconcileEventLogger | None = None,
    ) -> None:
        """Wire the reconciler to its collaborators."""
        self._store = store
        self._executor = executor
        self._notifier = notifier or NullServiceNotifier()
        self._state = state or ReconcilerState()
        self._event_logger = event_logger or ReconcileEventLogger()

    @property
    def state(self) -> ReconcilerState:
        """Return the state owned by this reconciler."""
        return self._state

    def plan(self, desired: cabc.Iterable[str]) -> ReconcilePlan:
        """Compute the fetch and remove partitions for ``desired``.

        Every desired repository is fetched, since fetching an unchanged
        repository is a no-op; removals are the local mirrors absent from
        ``desired``.
        """
        to_fetch = tuple(dict.fromkeys(desired))
        wanted = set(to_fetch)
        to_remove = tuple(
            repo for repo in self._state.local_mirrors if repo not in wanted
        )
        return ReconcilePlan(to_fetch=to_fetch, to_remove=to_remove)

    async def reconcile(self) -> ReconcileResult:
        """Run one full pass.

        Raises
        ------
        RegistryUnavailableError
            If the desired set cannot be listed.
        MissingRootError
            If removals are due but the mirror root is unresolved.

        """
        started_at = utcnow()
        context = ReconcileRunContext(
            local_mirrors=len(self._state.local_mirrors), started_at=started_at
        )
        self._event_logger.log_run_started(context)

        try:
            result = await self._reconcile_inner()
        except Exception as exc:
            self._event_logger.log_run_failed(context, exc, utcnow() - started_at)
            raise

        context = dataclasses.replace(
            context, local_mirrors=len(self._state.local_mirrors)
        )
        self._event_logger.log_run_completed(context, result, utcnow() - started_at)
        return result

    async def _reconcile_inner(self) -> ReconcileResult:
        desired = [record.repo for record in await self._store.list_all()]
        plan = self.plan(desired)

        fetched, fetch_failures = await self._fetch_all(plan.to_fetch)
        self._state.remember(plan.to_fetch)

        removed, remove_failures = await self._remove_all(plan.to_remove)

        await self._notify()
        return ReconcileResult(
            plan=plan,
            fetched=fetched,
            fetch_failures=fetch_failures,
            removed=removed,
            remove_failures=remove_failures,
        )

    async def _notify(self) -> None:
        try:
            await self._notifier.notify()
        except Exception as exc:  # noqa: BLE001 - notify failures never fail a pass
            self._event_logger.log_notify_failed(exc)

    async def _fetch_all(
        self, repos: tuple[str, ...]
    ) -> tuple[tuple[str, ...], tuple[RepoFailure, ...]]:
        fetched: list[str] = []
        failures: list[RepoFailure] = []
        for repo in repos:
            try:
                await self._executor.fetch(repo)
            except _PER_REPO_ERRORS as exc:
                self._event_logger.log_fetch_failed(repo, exc)
                failures.append(RepoFailure(repo=repo, error=str(exc)))
            else:
                fetched.append(repo)
        return tuple(fetched), tuple(failures)

    async def _remove_all(
        self, repos: tuple[str, ...]
    ) -> tuple[tuple[str, ...], tuple[RepoFailure, ...]]:
        if not repos:
            return (), ()

        self._executor.require_mirror_root()

        removed: list[str] = []
        failures: list[RepoFailure] = []
        for repo in repos:
            try:
                await self._executor.remove(repo)
            except _PER_REPO_ERRORS as exc:
                self._event_logger.log_remove_failed(repo, exc)
                failures.append(RepoFailure(repo=repo, error=str(exc)))
            else:
                removed.append(repo)
        return tuple(removed), tuple(failures)
