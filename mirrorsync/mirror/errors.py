"""Errors raised by mirror commands."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class MirrorError(Exception):
    """Base class for mirror errors."""


class MirrorCommandError(MirrorError):
    """Raised when a fetch, remove or notify command fails.

    Attributes
    ----------
    argv
        Command that was run.
    returncode
        Exit status, or ``None`` when the command could not be started.
    output
        Combined stdout and stderr captured from the command.

    """

    def __init__(
        self,
        argv: cabc.Sequence[str],
        returncode: int | None,
        output: str = "",
    ) -> None:
        """Initialise with the command, its exit status and output."""
        self.argv = tuple(argv)
        self.returncode = returncode
        self.output = output
        status = "could not start" if returncode is None else f"exited {returncode}"
        super().__init__(f"Command {' '.join(self.argv)!r} {status}")

    @classmethod
    def not_started(
        cls, argv: cabc.Sequence[str], exc: OSError | ValueError
    ) -> MirrorCommandError:
        """Return an error for a command that could not be spawned."""
        return cls(argv, None, str(exc))


class MissingRootError(MirrorError):
    """Raised when the local mirror root cannot be resolved for removals."""

    def __init__(self, env_var: str) -> None:
        """Initialise with the environment variable that was expected."""
        self.env_var = env_var
        super().__init__(
            f"{env_var} is unset or empty; unable to determine mirror delete path"
        )


class UnsafeMirrorPathError(MirrorError):
    """Raised when a repository identifier does not name a mirror directory."""

    def __init__(self, repo: str) -> None:
        """Initialise with the rejected identifier."""
        self.repo = repo
        super().__init__(
            f"Refusing to remove {repo!r}: not a path below the mirror root"
        )
