"""Apply webhook change events to the registry.

Every accepted change follows the same write path: mutate the repository row,
then bump the trigger counter. The bump is the commit signal watchers poll
for, so it happens strictly after the mutation returned and never when the
mutation was rejected or failed.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from mirrorsync.ingest.errors import (
    ProtectedKeyError,
    RepoNotFoundError,
    UnknownOperationError,
)
from mirrorsync.ingest.events import ChangeOperation, parse_repo_identifier
from mirrorsync.logging import get_logger, log_info
from mirrorsync.registry.models import RepoRecord

if typ.TYPE_CHECKING:
    from mirrorsync.ingest.events import RepositoryChangeEvent
    from mirrorsync.registry.counter import TriggerCounter
    from mirrorsync.registry.store import RegistryStore

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ChangeResult:
    """Outcome of a change applied to the registry."""

    repo: str
    operation: ChangeOperation
    count: int


class EventIngestor:
    """Normalize change events into registry writes followed by a counter bump.

    Parameters
    ----------
    store
        Registry the events mutate.
    counter
        Trigger counter bumped after each successful mutation.

    """

    def __init__(self, store: RegistryStore, counter: TriggerCounter) -> None:
        """Bind the ingestor to a registry store and its trigger counter."""
        self._store = store
        self._counter = counter

    async def apply_change(
        self, event: RepositoryChangeEvent, operation: ChangeOperation | str
    ) -> ChangeResult:
        """Apply ``operation`` for the repository named by ``event``.

        Parameters
        ----------
        event
            Decoded webhook body.
        operation
            ``create`` to upsert the repository record, ``delete`` to remove it.

        Returns
        -------
        ChangeResult
            The repository identifier and the counter value published.

        Raises
        ------
        UnknownOperationError
            If ``operation`` is neither create nor delete.
        RepoParseError
            If the event URL carries no scheme separator.
        ProtectedKeyError
            If the identifier is the reserved trigger key.
        RepoNotFoundError
            If a delete targets a repository that is not registered.
        RegistryUnavailableError
            If the registry cannot be read or written.

        """
        try:
            op = ChangeOperation(operation)
        except ValueError as exc:
            raise UnknownOperationError(operation) from exc

        repo = parse_repo_identifier(event.repository.svn_url)
        if repo == self._store.trigger_key:
            raise ProtectedKeyError(repo)

        log_info(
            logger,
            "Applying %s for repo=%s ref=%s commit=%s author=%s",
            op,
            repo,
            event.ref,
            event.head_commit.id,
            event.head_commit.author.name,
        )

        if op is ChangeOperation.CREATE:
            await self._store.put(_record_from_event(repo, event))
        else:
            if await self._store.get(repo) is None:
                raise RepoNotFoundError(repo)
            await self._store.delete(repo)

        count = await self._counter.bump()
        log_info(logger, "%s successful for repo=%s count=%d", op, repo, count)
        return ChangeResult(repo=repo, operation=op, count=count)


def _record_from_event(repo: str, event: RepositoryChangeEvent) -> RepoRecord:
    commit = event.head_commit
    return RepoRecord(
        repo=repo,
        last_commit_id=commit.id,
        last_commit_message=commit.message,
        last_commit_user=commit.author.email,
    )
