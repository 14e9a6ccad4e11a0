"""Async key-value access to the repository registry table.

The store is the only resource shared between the ingest service and the
reconciler. Database failures are never retried: each one surfaces to the
caller as :class:`RegistryUnavailableError` so each side can apply its own
policy (an HTTP 503 for ingest, a fatal exit for the reconciler).

Example:
-------
List the desired repository set::

    store = RegistryStore(session_factory, build_registry_table("registry"))
    for record in await store.list_all():
        print(record.repo)

"""

from __future__ import annotations

import contextlib
import typing as typ

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mirrorsync.logging import get_logger, log_warning
from mirrorsync.registry.errors import RegistryUnavailableError
from mirrorsync.registry.models import DEFAULT_TRIGGER_KEY, RepoRecord, TriggerRecord

if typ.TYPE_CHECKING:
    from sqlalchemy import RowMapping, Table
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from mirrorsync.registry.models import RegistryRecord

    type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 50

# An upsert can lose a race against a concurrent insert of the same key once.
_PUT_ATTEMPTS = 2


@contextlib.contextmanager
def _unavailable_on_error(operation: str) -> typ.Iterator[None]:
    """Translate database failures into :class:`RegistryUnavailableError`."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise RegistryUnavailableError(operation) from exc


class RegistryStore:
    """Persisted registry of repository records plus the trigger row.

    Parameters
    ----------
    session_factory
        Async session factory bound to the registry database.
    table
        Registry table built by :func:`build_registry_table`.
    trigger_key
        Reserved identifier of the trigger row.
    page_size
        Rows fetched per page when listing.
    max_pages
        Page cap for listings; larger registries are truncated.

    """

    def __init__(  # noqa: PLR0913
        self,
        session_factory: SessionFactory,
        table: Table,
        *,
        trigger_key: str = DEFAULT_TRIGGER_KEY,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        """Bind the store to a session factory and table."""
        self._session_factory = session_factory
        self._table = table
        self._trigger_key = trigger_key
        self._page_size = page_size
        self._max_pages = max_pages

    @property
    def trigger_key(self) -> str:
        """Return the reserved identifier of the trigger row."""
        return self._trigger_key

    async def get(self, repo: str) -> RegistryRecord | None:
        """Return the record stored under ``repo`` or ``None``."""
        query = select(self._table).where(self._table.c.repo == repo)
        with _unavailable_on_error("get"):
            async with self._session_factory() as session:
                row = (await session.execute(query)).mappings().first()

        if row is None:
            return None
        if row["repo"] == self._trigger_key:
            return TriggerRecord(repo=row["repo"], count=row["count"] or 0)
        return _to_repo_record(row)

    async def put(self, record: RegistryRecord) -> None:
        """Write ``record``, replacing every column of any existing row."""
        values = _to_values(record)
        table = self._table
        with _unavailable_on_error("put"):
            for attempt in range(1, _PUT_ATTEMPTS + 1):
                try:
                    async with self._session_factory() as session, session.begin():
                        result = await session.execute(
                            update(table)
                            .where(table.c.repo == record.repo)
                            .values(**values)
                        )
                        if result.rowcount == 0:
                            await session.execute(
                                insert(table).values(repo=record.repo, **values)
                            )
                except IntegrityError:
                    if attempt == _PUT_ATTEMPTS:
                        raise
                else:
                    return

    async def delete(self, repo: str) -> None:
        """Delete the row stored under ``repo`` if present."""
        with _unavailable_on_error("delete"):
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(self._table).where(self._table.c.repo == repo)
                )

    async def list_all(self) -> list[RepoRecord]:
        """Return every repository record ordered by identifier.

        The trigger row is filtered out of each page rather than excluded by
        the query. Listing stops after ``max_pages`` pages; a warning is
        logged when rows remain beyond the cap.
        """
        table = self._table
        records: list[RepoRecord] = []
        last_key: str | None = None

        with _unavailable_on_error("list"):
            async with self._session_factory() as session:
                for _ in range(self._max_pages):
                    query = select(table).order_by(table.c.repo).limit(self._page_size)
                    if last_key is not None:
                        query = query.where(table.c.repo > last_key)
                    rows = (await session.execute(query)).mappings().all()
                    records.extend(
                        _to_repo_record(row)
                        for row in rows
                        if row["repo"] != self._trigger_key
                    )
                    if len(rows) < self._page_size:
                        return records
                    last_key = rows[-1]["repo"]

                beyond_cap = await session.execute(
                    select(table.c.repo)
                    .where(table.c.repo > last_key)
                    .where(table.c.repo != self._trigger_key)
                    .limit(1)
                )
                if beyond_cap.first() is None:
                    return records

        log_warning(
            logger,
            "Registry listing truncated after %d pages of %d rows (last key %s)",
            self._max_pages,
            self._page_size,
            last_key,
        )
        return records

    async def compare_and_set_count(
        self, expected: TriggerRecord | None, new_count: int
    ) -> bool:
        """Write ``new_count`` only if the trigger row still matches ``expected``.

        ``expected`` is the trigger record read before computing
        ``new_count``; ``None`` means the row did not exist. Returns ``False``
        when another writer changed the row in between.
        """
        table = self._table
        with _unavailable_on_error("compare_and_set_count"):
            if expected is None:
                try:
                    async with self._session_factory() as session, session.begin():
                        await session.execute(
                            insert(table).values(
                                repo=self._trigger_key, count=new_count
                            )
                        )
                except IntegrityError:
                    return False
                return True

            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    update(table)
                    .where(
                        table.c.repo == self._trigger_key,
                        func.coalesce(table.c.count, 0) == expected.count,
                    )
                    .values(count=new_count)
                )
            return result.rowcount == 1


def _to_repo_record(row: RowMapping) -> RepoRecord:
    return RepoRecord(
        repo=row["repo"],
        last_commit_id=row["last_commit_id"] or "",
        last_commit_message=row["last_commit_message"] or "",
        last_commit_user=row["last_commit_user"] or "",
    )


def _to_values(record: RegistryRecord) -> dict[str, object]:
    """Return column values for ``record``, excluding the key."""
    if isinstance(record, TriggerRecord):
        return {
            "count": record.count,
            "last_commit_id": None,
            "last_commit_message": None,
            "last_commit_user": None,
        }
    return {
        "count": None,
        "last_commit_id": record.last_commit_id,
        "last_commit_message": record.last_commit_message,
        "last_commit_user": record.last_commit_user,
    }
