"""Behavioural coverage for mirror reconciliation."""

from __future__ import annotations

import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from mirrorsync.mirror import CommandMirrorExecutor
from mirrorsync.reconcile import CounterWatcher, Reconciler
from mirrorsync.registry import (
    RegistryStore,
    RepoRecord,
    TriggerCounter,
    build_registry_table,
    init_registry_storage,
)
from tests.helpers import FakeRunner, run_async

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

MIRROR_ROOT = "/srv/go"


class ReconcileContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    engine: AsyncEngine
    store: RegistryStore
    runner: FakeRunner
    reconciler: Reconciler


def _split(names: str) -> list[str]:
    return [name.strip() for name in names.split(",") if name.strip()]


@scenario("../reconcile.feature", "A new registry entry is fetched")
def test_new_entry_fetched() -> None:
    """Wrap the pytest-bdd scenario for fetching."""


@scenario("../reconcile.feature", "A repository dropped from the registry is removed")
def test_dropped_entry_removed() -> None:
    """Wrap the pytest-bdd scenario for removal."""


@scenario(
    "../reconcile.feature", "An unchanged counter never triggers reconciliation"
)
def test_unchanged_counter_idle() -> None:
    """Wrap the pytest-bdd scenario for an idle watcher."""


@pytest.fixture
def reconcile_context(tmp_path: Path) -> typ.Iterator[ReconcileContext]:
    """Provide a sqlite registry, a fake runner and a reconciler."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reconcile.db'}", poolclass=NullPool
    )
    table = build_registry_table("registry")
    run_async(lambda: init_registry_storage(engine, table))
    store = RegistryStore(async_sessionmaker(engine, expire_on_commit=False), table)
    runner = FakeRunner()
    executor = CommandMirrorExecutor(runner=runner, environ={"GOPATH": MIRROR_ROOT})
    yield {
        "engine": engine,
        "store": store,
        "runner": runner,
        "reconciler": Reconciler(store, executor),
    }
    run_async(engine.dispose)


@given(parsers.parse('the registry lists "{repos}"'))
def given_registry_lists(reconcile_context: ReconcileContext, repos: str) -> None:
    """Store one record per listed identifier."""
    store = reconcile_context["store"]

    async def _put_all() -> None:
        for repo in _split(repos):
            await store.put(RepoRecord(repo=repo))

    run_async(_put_all)


@given(parsers.parse('the local mirrors are "{repos}"'))
def given_local_mirrors(reconcile_context: ReconcileContext, repos: str) -> None:
    """Seed the reconciler's local mirror set."""
    reconcile_context["reconciler"].state.remember(_split(repos))


@when("the reconciler runs a pass")
def when_reconciler_runs(reconcile_context: ReconcileContext) -> None:
    """Run one reconciliation pass."""
    run_async(reconcile_context["reconciler"].reconcile)


@when("the watcher polls twice without a counter change")
def when_watcher_polls_twice(reconcile_context: ReconcileContext) -> None:
    """Tick the watcher twice against an untouched counter."""
    watcher = CounterWatcher(
        TriggerCounter(reconcile_context["store"]), reconcile_context["reconciler"]
    )

    async def _poll_twice() -> None:
        await watcher.tick()
        await watcher.tick()

    run_async(_poll_twice)


@then(parsers.parse('fetches ran for "{repos}"'))
def then_fetches_ran(reconcile_context: ReconcileContext, repos: str) -> None:
    """Assert the fetch commands, in order."""
    fetched = [
        argv[-1] for argv in reconcile_context["runner"].argvs if argv[0] == "go"
    ]
    assert fetched == _split(repos), f"unexpected fetches {fetched}"


@then("no fetches ran")
def then_no_fetches(reconcile_context: ReconcileContext) -> None:
    """Assert that no command ran at all."""
    assert reconcile_context["runner"].argvs == [], "expected no commands"


@then("no removals ran")
def then_no_removals(reconcile_context: ReconcileContext) -> None:
    """Assert that no remove command ran."""
    removed = [argv for argv in reconcile_context["runner"].argvs if argv[0] == "rm"]
    assert removed == [], f"unexpected removals {removed}"


@then(parsers.parse('removals ran for "{repos}"'))
def then_removals_ran(reconcile_context: ReconcileContext, repos: str) -> None:
    """Assert the removal commands target the mirror paths."""
    removed = [
        argv[-1] for argv in reconcile_context["runner"].argvs if argv[0] == "rm"
    ]
    expected = [f"{MIRROR_ROOT}/src/{repo}" for repo in _split(repos)]
    assert removed == expected, f"unexpected removals {removed}"


@then(parsers.parse('the local mirrors are now "{repos}"'))
def then_local_mirrors(reconcile_context: ReconcileContext, repos: str) -> None:
    """Assert the reconciler's local mirror set."""
    local = list(reconcile_context["reconciler"].state.local_mirrors)
    assert local == _split(repos), f"unexpected local mirrors {local}"
