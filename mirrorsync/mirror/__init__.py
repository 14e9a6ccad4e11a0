"""Local mirror operations: fetch, remove, and dependent-service notification."""

from mirrorsync.mirror.errors import (
    MirrorCommandError,
    MirrorError,
    MissingRootError,
    UnsafeMirrorPathError,
)
from mirrorsync.mirror.executor import (
    CommandMirrorExecutor,
    CommandOutput,
    MirrorCommandConfig,
    MirrorExecutor,
    build_command_env,
    run_command,
)
from mirrorsync.mirror.gitconfig import render_git_credentials, write_git_credentials
from mirrorsync.mirror.notifier import (
    CommandServiceNotifier,
    HttpServiceNotifier,
    NullServiceNotifier,
    ServiceNotifier,
)

__all__ = [
    "CommandMirrorExecutor",
    "CommandOutput",
    "CommandServiceNotifier",
    "HttpServiceNotifier",
    "MirrorCommandConfig",
    "MirrorCommandError",
    "MirrorError",
    "MirrorExecutor",
    "MissingRootError",
    "NullServiceNotifier",
    "ServiceNotifier",
    "UnsafeMirrorPathError",
    "build_command_env",
    "render_git_credentials",
    "run_command",
    "write_git_credentials",
]
