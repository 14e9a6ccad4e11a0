"""External-process fetch and remove operations for local mirrors.

Each operation runs exactly one command per repository. Commands receive the
process environment plus configured ``KEY=VALUE`` overrides, so settings such
as ``GOPATH`` or ``GOPROXY`` reach ``go get`` without changing the service's
own environment.

Usage
-----
Fetch a repository with the default ``go get`` command::

    config = MirrorCommandConfig(env_overrides=("GOPATH=/srv/go",))
    executor = CommandMirrorExecutor(config)
    await executor.fetch("github.com/acme/widgets")

"""

from __future__ import annotations

import asyncio
import dataclasses
import os
import pathlib
import typing as typ

from mirrorsync.common.identifiers import is_safe_repo_identifier
from mirrorsync.logging import get_logger, log_warning
from mirrorsync.mirror.errors import (
    MirrorCommandError,
    MissingRootError,
    UnsafeMirrorPathError,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

DEFAULT_FETCH_COMMAND = ("go", "get", "-u", "-d", "{repo}")
DEFAULT_REMOVE_COMMAND = ("rm", "-rf", "{path}")


@dataclasses.dataclass(frozen=True, slots=True)
class CommandOutput:
    """Result of a command that exited successfully."""

    argv: tuple[str, ...]
    returncode: int
    output: str


type CommandRunner = cabc.Callable[
    [cabc.Sequence[str], cabc.Mapping[str, str]], cabc.Awaitable[CommandOutput]
]


async def run_command(
    argv: cabc.Sequence[str], env: cabc.Mapping[str, str]
) -> CommandOutput:
    """Run ``argv`` with ``env`` and return its combined output.

    Raises
    ------
    MirrorCommandError
        If the command cannot be started or exits non-zero.

    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            env=dict(env),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except (OSError, ValueError) as exc:
        raise MirrorCommandError.not_started(argv, exc) from exc

    stdout, _ = await process.communicate()
    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    returncode = process.returncode if process.returncode is not None else -1
    if returncode != 0:
        raise MirrorCommandError(argv, returncode, output)
    return CommandOutput(argv=tuple(argv), returncode=returncode, output=output)


def build_command_env(
    environ: cabc.Mapping[str, str], overrides: cabc.Iterable[str]
) -> dict[str, str]:
    """Merge ``KEY=VALUE`` overrides into a copy of ``environ``."""
    env = dict(environ)
    for entry in overrides:
        key, separator, value = entry.partition("=")
        if not separator or not key:
            log_warning(logger, "Ignoring malformed environment override %r", entry)
            continue
        env[key] = value
    return env


@dataclasses.dataclass(frozen=True, slots=True)
class MirrorCommandConfig:
    """Command templates and environment for mirror operations.

    Attributes
    ----------
    fetch_command
        Argv template for fetching; ``{repo}`` is replaced by the identifier.
    remove_command
        Argv template for removal; ``{path}``, ``{repo}`` and ``{root}`` are
        replaced by the local mirror path, identifier and mirror root.
    env_overrides
        ``KEY=VALUE`` entries layered over the process environment.
    mirror_root_env
        Environment variable naming the mirror root.
    mirror_subdir
        Directory under the root that holds mirrors.

    """

    fetch_command: tuple[str, ...] = DEFAULT_FETCH_COMMAND
    remove_command: tuple[str, ...] = DEFAULT_REMOVE_COMMAND
    env_overrides: tuple[str, ...] = ()
    mirror_root_env: str = "GOPATH"
    mirror_subdir: str = "src"


class MirrorExecutor(typ.Protocol):
    """Capability to materialize and delete local mirrors."""

    async def fetch(self, repo: str) -> CommandOutput:
        """Fetch or update the mirror of ``repo``."""
        ...

    async def remove(self, repo: str) -> CommandOutput:
        """Delete the local mirror of ``repo``."""
        ...

    def require_mirror_root(self) -> str:
        """Return the mirror root or raise :class:`MissingRootError`."""
        ...


class CommandMirrorExecutor:
    """Run configured commands to fetch and remove mirrors."""

    def __init__(
        self,
        config: MirrorCommandConfig | None = None,
        *,
        runner: CommandRunner = run_command,
        environ: cabc.Mapping[str, str] | None = None,
    ) -> None:
        """Configure command templates, the runner, and the base environment."""
        self._config = config or MirrorCommandConfig()
        self._runner = runner
        self._env = build_command_env(
            os.environ if environ is None else environ, self._config.env_overrides
        )

    @property
    def env(self) -> cabc.Mapping[str, str]:
        """Return the environment passed to every command."""
        return self._env

    def mirror_root(self) -> str | None:
        """Return the mirror root from the command environment."""
        return self._env.get(self._config.mirror_root_env) or None

    def require_mirror_root(self) -> str:
        """Return the mirror root or raise :class:`MissingRootError`."""
        root = self.mirror_root()
        if root is None:
            raise MissingRootError(self._config.mirror_root_env)
        return root

    def mirror_path(self, repo: str) -> pathlib.PurePosixPath:
        """Return the local mirror directory for ``repo``.

        Raises
        ------
        MissingRootError
            If the mirror root is unresolved.
        UnsafeMirrorPathError
            If ``repo`` is absolute, contains control characters, or has
            empty, ``.`` or ``..`` segments.

        """
        root = self.require_mirror_root()
        if not is_safe_repo_identifier(repo):
            raise UnsafeMirrorPathError(repo)
        return pathlib.PurePosixPath(root, self._config.mirror_subdir, repo)

    async def fetch(self, repo: str) -> CommandOutput:
        """Run the fetch command for ``repo``."""
        argv = _render(self._config.fetch_command, repo=repo)
        return await self._runner(argv, self._env)

    async def remove(self, repo: str) -> CommandOutput:
        """Run the remove command for the mirror of ``repo``."""
        path = self.mirror_path(repo)
        argv = _render(
            self._config.remove_command,
            repo=repo,
            path=str(path),
            root=self.require_mirror_root(),
        )
        return await self._runner(argv, self._env)


def _render(template: cabc.Sequence[str], **values: str) -> list[str]:
    return [part.format_map(values) for part in template]
