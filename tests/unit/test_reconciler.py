"""Unit tests for the diff-and-apply reconciler."""

from __future__ import annotations

import sys

import pytest

from mirrorsync.mirror import (
    CommandMirrorExecutor,
    MirrorCommandConfig,
    MissingRootError,
)
from mirrorsync.reconcile import Reconciler, ReconcilerState
from mirrorsync.registry import (
    RegistryStore,
    RegistryUnavailableError,
    RepoRecord,
    TriggerRecord,
)
from tests.helpers import FakeRunner, RecordingNotifier

ROOT_ENV = {"GOPATH": "/srv/go"}


def _reconciler(
    store: RegistryStore,
    runner: FakeRunner,
    *,
    local: tuple[str, ...] = (),
    environ: dict[str, str] | None = None,
    notifier: RecordingNotifier | None = None,
) -> Reconciler:
    state = ReconcilerState()
    state.remember(local)
    executor = CommandMirrorExecutor(
        MirrorCommandConfig(),
        runner=runner,
        environ=ROOT_ENV if environ is None else environ,
    )
    return Reconciler(store, executor, notifier, state=state)


def _fetched(runner: FakeRunner) -> list[str]:
    return [argv[-1] for argv in runner.argvs if argv[0] == "go"]


def _removed(runner: FakeRunner) -> list[str]:
    return [argv[-1] for argv in runner.argvs if argv[0] == "rm"]


async def _register(store: RegistryStore, *repos: str) -> None:
    for repo in repos:
        await store.put(RepoRecord(repo=repo))


class TestPlan:
    """Tests for the pure partition."""

    def test_plan_fetches_everything_desired(self, store: RegistryStore) -> None:
        """Every desired identifier is fetched, once, in order."""
        reconciler = _reconciler(store, FakeRunner(), local=("b",))

        plan = reconciler.plan(["a", "b", "a"])

        assert plan.to_fetch == ("a", "b"), f"Unexpected fetch set {plan.to_fetch}"
        assert plan.to_remove == (), "Expected nothing to remove."

    def test_plan_removes_local_mirrors_no_longer_desired(
        self, store: RegistryStore
    ) -> None:
        """Removals preserve the local mirror order."""
        reconciler = _reconciler(store, FakeRunner(), local=("c", "a", "b"))

        plan = reconciler.plan(["a"])

        assert plan.to_remove == ("c", "b"), f"Unexpected removals {plan.to_remove}"


@pytest.mark.asyncio
async def test_new_registry_entry_is_fetched_and_remembered(
    store: RegistryStore,
) -> None:
    """Registry {a, b} with local {a} fetches both and removes nothing."""
    await _register(store, "github.com/o/a", "github.com/o/b")
    runner = FakeRunner()
    reconciler = _reconciler(store, runner, local=("github.com/o/a",))

    result = await reconciler.reconcile()

    assert _fetched(runner) == ["github.com/o/a", "github.com/o/b"]
    assert _removed(runner) == [], "Expected no removals."
    assert reconciler.state.local_mirrors == ("github.com/o/a", "github.com/o/b")
    assert result.fetched == ("github.com/o/a", "github.com/o/b")


@pytest.mark.asyncio
async def test_repository_left_in_registry_is_removed(store: RegistryStore) -> None:
    """Registry {a} with local {a, b} removes b only."""
    await _register(store, "github.com/o/a")
    runner = FakeRunner()
    reconciler = _reconciler(store, runner, local=("github.com/o/a", "github.com/o/b"))

    result = await reconciler.reconcile()

    assert _removed(runner) == ["/srv/go/src/github.com/o/b"], (
        f"Unexpected removals {runner.argvs}"
    )
    assert result.removed == ("github.com/o/b",), "Expected b in the result."


@pytest.mark.asyncio
async def test_all_fetches_precede_removals(store: RegistryStore) -> None:
    """Within a pass no removal runs before the last fetch."""
    await _register(store, "github.com/o/a", "github.com/o/c")
    runner = FakeRunner()
    reconciler = _reconciler(store, runner, local=("github.com/o/b",))

    await reconciler.reconcile()

    tools = [argv[0] for argv in runner.argvs]
    assert tools == ["go", "go", "rm"], f"Expected fetches before removal, got {tools}"


@pytest.mark.asyncio
async def test_trigger_row_is_never_fetched(store: RegistryStore) -> None:
    """The trigger row is not part of the desired set."""
    await store.put(TriggerRecord(repo=store.trigger_key, count=9))
    runner = FakeRunner()

    await _reconciler(store, runner).reconcile()

    assert runner.argvs == [], f"Expected no commands, got {runner.argvs}"


@pytest.mark.asyncio
async def test_failed_fetch_does_not_stop_others(store: RegistryStore) -> None:
    """A fetch failure is recorded and the pass continues."""
    await _register(store, "github.com/o/a", "github.com/o/b", "github.com/o/c")
    runner = FakeRunner(failures={"github.com/o/b": 1})
    notifier = RecordingNotifier()
    reconciler = _reconciler(store, runner, notifier=notifier)

    result = await reconciler.reconcile()

    assert result.fetched == ("github.com/o/a", "github.com/o/c")
    assert [failure.repo for failure in result.fetch_failures] == ["github.com/o/b"]
    assert notifier.calls == 1, "Expected the notifier to run after the pass."


@pytest.mark.asyncio
async def test_failed_remove_does_not_stop_others(store: RegistryStore) -> None:
    """A removal failure is recorded and later removals still run."""
    runner = FakeRunner(failures={"/srv/go/src/github.com/o/a": 1})
    reconciler = _reconciler(store, runner, local=("github.com/o/a", "github.com/o/b"))

    result = await reconciler.reconcile()

    assert result.removed == ("github.com/o/b",), "Expected b to be removed."
    assert [failure.repo for failure in result.remove_failures] == ["github.com/o/a"]


@pytest.mark.asyncio
async def test_missing_root_fails_pass_before_any_removal(
    store: RegistryStore,
) -> None:
    """Without a mirror root no removal runs and the pass fails."""
    await _register(store, "github.com/o/a")
    runner = FakeRunner()
    notifier = RecordingNotifier()
    reconciler = _reconciler(
        store,
        runner,
        local=("github.com/o/b",),
        environ={"PATH": "/usr/bin"},
        notifier=notifier,
    )

    with pytest.raises(MissingRootError):
        await reconciler.reconcile()

    assert _removed(runner) == [], "Expected no removal commands."
    assert _fetched(runner) == ["github.com/o/a"], "Expected fetches to have run."
    assert notifier.calls == 0, "Expected no notification for a failed pass."


@pytest.mark.asyncio
async def test_missing_root_is_ignored_without_removals(store: RegistryStore) -> None:
    """A pass with nothing to remove does not need the mirror root."""
    await _register(store, "github.com/o/a")
    runner = FakeRunner()

    result = await _reconciler(store, runner, environ={}).reconcile()

    assert result.fetched == ("github.com/o/a",), "Expected the fetch to succeed."


@pytest.mark.asyncio
async def test_second_pass_is_idempotent(store: RegistryStore) -> None:
    """Reconciling twice against the same registry removes nothing new."""
    await _register(store, "github.com/o/a")
    runner = FakeRunner()
    reconciler = _reconciler(store, runner, local=("github.com/o/b",))

    await reconciler.reconcile()
    second = await reconciler.reconcile()

    assert second.plan.to_fetch == ("github.com/o/a",), "Expected the same fetches."
    assert _removed(runner) == [
        "/srv/go/src/github.com/o/b",
        "/srv/go/src/github.com/o/b",
    ], "Expected the stale mirror to be removed again, harmlessly."


class _UnavailableStore:
    trigger_key = "00000trigger"

    async def list_all(self) -> list[RepoRecord]:
        raise RegistryUnavailableError("list")


@pytest.mark.asyncio
async def test_listing_failure_propagates() -> None:
    """A registry outage fails the pass without running commands."""
    runner = FakeRunner()
    executor = CommandMirrorExecutor(runner=runner, environ=ROOT_ENV)
    reconciler = Reconciler(_UnavailableStore(), executor)  # type: ignore[arg-type]  # stub

    with pytest.raises(RegistryUnavailableError):
        await reconciler.reconcile()

    assert runner.calls == [], "Expected no commands."


class _RaisingNotifier:
    """Notifier that fails in a way the built-in notifiers never should."""

    def __init__(self) -> None:
        self.calls = 0

    async def notify(self) -> None:
        self.calls += 1
        msg = "notify endpoint misconfigured"
        raise RuntimeError(msg)


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_pass(
    store: RegistryStore, caplog: pytest.LogCaptureFixture
) -> None:
    """An exception from the notifier is logged and the pass still completes."""
    await _register(store, "github.com/o/a")
    notifier = _RaisingNotifier()
    executor = CommandMirrorExecutor(
        MirrorCommandConfig(), runner=FakeRunner(), environ=ROOT_ENV
    )
    reconciler = Reconciler(store, executor, notifier)

    with caplog.at_level("WARNING"):
        result = await reconciler.reconcile()

    assert result.fetched == ("github.com/o/a",), "Expected the fetch to count."
    assert notifier.calls == 1, "Expected one notify attempt."
    assert "reconcile.notify.failed" in caplog.text, "Expected a notify event."
    assert reconciler.state.local_mirrors == ("github.com/o/a",)


class _StaticStore:
    """Store stub returning a fixed desired set."""

    def __init__(self, *repos: str) -> None:
        self._records = [RepoRecord(repo=repo) for repo in repos]

    async def list_all(self) -> list[RepoRecord]:
        return list(self._records)


@pytest.mark.asyncio
async def test_unspawnable_fetch_is_a_per_repository_failure() -> None:
    """An identifier the OS rejects as an argument fails only its own fetch."""
    store = _StaticStore("github.com/o/a", "github.com/o/bad\x00name")
    executor = CommandMirrorExecutor(
        MirrorCommandConfig(fetch_command=(sys.executable, "-c", "pass", "{repo}")),
        environ=ROOT_ENV,
    )
    reconciler = Reconciler(store, executor)  # type: ignore[arg-type]  # stub

    result = await reconciler.reconcile()

    assert result.fetched == ("github.com/o/a",), "Expected the good fetch."
    assert [failure.repo for failure in result.fetch_failures] == [
        "github.com/o/bad\x00name"
    ], "Expected the bad identifier to fail on its own."


@pytest.mark.asyncio
async def test_removal_never_targets_the_mirror_tree(store: RegistryStore) -> None:
    """A stale ``.`` identifier is refused instead of deleting every mirror."""
    runner = FakeRunner()
    reconciler = _reconciler(store, runner, local=(".", "github.com/o/gone"))

    result = await reconciler.reconcile()

    assert _removed(runner) == ["/srv/go/src/github.com/o/gone"], (
        f"Unexpected removals {_removed(runner)}"
    )
    assert [failure.repo for failure in result.remove_failures] == ["."]
