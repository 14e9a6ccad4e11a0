"""Shared test utilities."""

from __future__ import annotations

import asyncio
import dataclasses
import typing as typ

from mirrorsync.mirror.errors import MirrorCommandError
from mirrorsync.mirror.executor import CommandOutput

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def run_async[T](coro_func: typ.Callable[[], typ.Coroutine[typ.Any, typ.Any, T]]) -> T:
    """Execute an async callable within the test context."""
    return asyncio.run(coro_func())


@dataclasses.dataclass
class FakeRunner:
    """Command runner that records argv and fails on configured needles.

    A command fails when any argv element contains a key of ``failures``;
    the mapped value is the exit status reported.
    """

    failures: dict[str, int] = dataclasses.field(default_factory=dict)
    calls: list[tuple[tuple[str, ...], dict[str, str]]] = dataclasses.field(
        default_factory=list
    )

    async def __call__(
        self, argv: cabc.Sequence[str], env: cabc.Mapping[str, str]
    ) -> CommandOutput:
        command = tuple(argv)
        self.calls.append((command, dict(env)))
        for needle, returncode in self.failures.items():
            if any(needle in part for part in command):
                raise MirrorCommandError(command, returncode, f"{needle}: failed")
        return CommandOutput(argv=command, returncode=0, output="")

    @property
    def argvs(self) -> list[tuple[str, ...]]:
        """Return every argv run, in order."""
        return [argv for argv, _ in self.calls]


@dataclasses.dataclass
class RecordingNotifier:
    """Notifier counting how often it was signalled."""

    calls: int = 0

    async def notify(self) -> None:
        self.calls += 1
