"""Configuration for the ingest service and the reconciler.

Settings come from a YAML 1.2 file converted into typed ``msgspec`` structs,
followed by a small set of environment overrides for container deployments.

Example file::

    log_level: INFO
    store:
      database_url: postgresql+asyncpg://mirrorsync@db/mirrorsync
      table: mirrorsync_registry
    ingest:
      port: 5050
    reconciler:
      interval: 20
      fetch_envs: ["GOPATH=/srv/go", "GOPROXY=direct"]
      github_server: git.example.com
      github_pat: "..."

Environment overrides:

- ``MIRRORSYNC_CONFIG``: config file path (default ``/etc/mirrorsync.yml``)
- ``MIRRORSYNC_DATABASE_URL``: replaces ``store.database_url``
- ``MIRRORSYNC_LOG_LEVEL``: replaces ``log_level``
- ``MIRRORSYNC_HOST`` / ``MIRRORSYNC_PORT``: replace the ingest bind address
"""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from mirrorsync.mirror.executor import (
    DEFAULT_FETCH_COMMAND,
    DEFAULT_REMOVE_COMMAND,
    MirrorCommandConfig,
)
from mirrorsync.mirror.notifier import DEFAULT_NOTIFY_COMMAND, DEFAULT_NOTIFY_TIMEOUT_S
from mirrorsync.registry.models import DEFAULT_TRIGGER_KEY
from mirrorsync.registry.store import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE

if typ.TYPE_CHECKING:
    import collections.abc as cabc

YAML_VERSION = (1, 2)
DEFAULT_CONFIG_PATH = Path("/etc/mirrorsync.yml")
CONFIG_PATH_ENV = "MIRRORSYNC_CONFIG"

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(self, issues: cabc.Sequence[str]) -> None:
        """Initialise with every problem found."""
        self.issues = list(issues)
        super().__init__("; ".join(self.issues))


class StoreSettings(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Registry database settings.

    Attributes
    ----------
    database_url : str
        SQLAlchemy async URL of the registry database. Required.
    table : str
        Registry table name. Required.
    trigger_key : str
        Reserved identifier of the trigger row.
    page_size : int
        Rows per page when listing the registry.
    max_pages : int
        Page cap for listings.

    """

    database_url: str = ""
    table: str = ""
    trigger_key: str = DEFAULT_TRIGGER_KEY
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES


class IngestSettings(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Bind address of the ingest service."""

    host: str = "0.0.0.0"  # noqa: S104 - bind all interfaces for container
    port: int = 5050


class ReconcilerSettings(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Polling, command and notification settings for the reconciler.

    Attributes
    ----------
    interval : int
        Seconds between counter polls.
    fetch_envs : tuple[str, ...]
        ``KEY=VALUE`` entries added to the command environment.
    go_binary_path : str
        Replaces ``go`` in the default fetch command.
    mirror_root_env : str
        Environment variable naming the mirror root.
    mirror_subdir : str
        Directory under the mirror root holding mirrors.
    fetch_command, remove_command, notify_command : tuple[str, ...] | None
        Argv overrides for the fetch, remove and notify commands.
    notify_url : str | None
        When set, notify with an HTTP POST instead of a command.
    notify_enabled : bool
        Set to false to skip notification entirely.
    github_server, github_pat : str
        Private Git server and access token for credential rewrites.
    gitconfig_path : str
        File receiving the credential rewrite rules.

    """

    interval: int = 20
    fetch_envs: tuple[str, ...] = ()
    go_binary_path: str = ""
    mirror_root_env: str = "GOPATH"
    mirror_subdir: str = "src"
    fetch_command: tuple[str, ...] | None = None
    remove_command: tuple[str, ...] | None = None
    notify_command: tuple[str, ...] | None = None
    notify_url: str | None = None
    notify_timeout_s: float = DEFAULT_NOTIFY_TIMEOUT_S
    notify_enabled: bool = True
    github_server: str = ""
    github_pat: str = ""
    gitconfig_path: str = "/etc/gitconfig"


class Settings(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Top-level mirrorsync settings."""

    log_level: str = "INFO"
    store: StoreSettings = msgspec.field(default_factory=StoreSettings)
    ingest: IngestSettings = msgspec.field(default_factory=IngestSettings)
    reconciler: ReconcilerSettings = msgspec.field(default_factory=ReconcilerSettings)


def load_settings(
    path: Path | str | None = None,
    *,
    environ: cabc.Mapping[str, str] | None = None,
) -> Settings:
    """Load, override and validate settings.

    An explicitly named file (argument or ``MIRRORSYNC_CONFIG``) must exist;
    a missing default file is treated as empty so containers can configure
    everything through the environment.

    Raises
    ------
    ConfigError
        If the file cannot be parsed or the result is invalid.

    """
    env = os.environ if environ is None else environ
    explicit = path if path is not None else env.get(CONFIG_PATH_ENV) or None
    config_path = Path(explicit) if explicit is not None else DEFAULT_CONFIG_PATH

    if config_path.exists() or explicit is not None:
        loaded = _read_yaml(config_path)
    else:
        loaded = {}

    try:
        settings = msgspec.convert(loaded, type=Settings)
    except msgspec.ValidationError as exc:
        raise ConfigError([f"{config_path}: {exc}"]) from exc

    settings = apply_env_overrides(settings, env)
    validate_settings(settings)
    return settings


def apply_env_overrides(
    settings: Settings, environ: cabc.Mapping[str, str]
) -> Settings:
    """Return ``settings`` with ``MIRRORSYNC_*`` environment values applied."""
    store = settings.store
    if database_url := environ.get("MIRRORSYNC_DATABASE_URL", "").strip():
        store = msgspec.structs.replace(store, database_url=database_url)

    ingest = settings.ingest
    if host := environ.get("MIRRORSYNC_HOST", "").strip():
        ingest = msgspec.structs.replace(ingest, host=host)
    if port := environ.get("MIRRORSYNC_PORT", "").strip():
        ingest = msgspec.structs.replace(ingest, port=_parse_port(port))

    log_level = environ.get("MIRRORSYNC_LOG_LEVEL", "").strip() or settings.log_level
    return msgspec.structs.replace(
        settings, store=store, ingest=ingest, log_level=log_level
    )


def validate_settings(settings: Settings) -> Settings:
    """Check cross-field constraints, collecting every issue.

    Raises
    ------
    ConfigError
        If any required directive is missing or out of range.

    """
    issues: list[str] = []
    store = settings.store
    if not store.database_url:
        issues.append("missing configuration directive store.database_url")
    if not store.table:
        issues.append("missing configuration directive store.table")
    if not store.trigger_key:
        issues.append("store.trigger_key must be non-empty")
    if store.page_size < 1:
        issues.append("store.page_size must be positive")
    if store.max_pages < 1:
        issues.append("store.max_pages must be positive")
    if not _MIN_PORT <= settings.ingest.port <= _MAX_PORT:
        issues.append(f"ingest.port must be {_MIN_PORT}-{_MAX_PORT}")
    reconciler = settings.reconciler
    if reconciler.interval < 1:
        issues.append("reconciler.interval must be positive")
    if bool(reconciler.github_pat) and not reconciler.github_server:
        issues.append("reconciler.github_server is required with github_pat")
    for name in ("fetch_command", "remove_command", "notify_command"):
        if getattr(reconciler, name) == ():
            issues.append(f"reconciler.{name} must not be empty")

    if issues:
        raise ConfigError(issues)
    return settings


def mirror_command_config(settings: ReconcilerSettings) -> MirrorCommandConfig:
    """Build executor command templates from reconciler settings."""
    fetch_command = settings.fetch_command
    if fetch_command is None:
        fetch_command = DEFAULT_FETCH_COMMAND
        if settings.go_binary_path:
            fetch_command = (settings.go_binary_path, *DEFAULT_FETCH_COMMAND[1:])
    return MirrorCommandConfig(
        fetch_command=fetch_command,
        remove_command=settings.remove_command or DEFAULT_REMOVE_COMMAND,
        env_overrides=settings.fetch_envs,
        mirror_root_env=settings.mirror_root_env,
        mirror_subdir=settings.mirror_subdir,
    )


def notify_command(settings: ReconcilerSettings) -> tuple[str, ...]:
    """Return the notify argv, falling back to the default restart command."""
    return settings.notify_command or DEFAULT_NOTIFY_COMMAND


def describe_settings(settings: Settings) -> list[str]:
    """Return ``key = value`` lines for startup logging with secrets redacted."""
    store = settings.store
    reconciler = settings.reconciler
    return [
        f"log_level = {settings.log_level}",
        f"store.database_url = {_redact_url(store.database_url)}",
        f"store.table = {store.table}",
        f"store.trigger_key = {store.trigger_key}",
        f"ingest.listen = {settings.ingest.host}:{settings.ingest.port}",
        f"reconciler.interval = {reconciler.interval}",
        f"reconciler.mirror_root_env = {reconciler.mirror_root_env}",
        f"reconciler.fetch_envs = {len(reconciler.fetch_envs)} entries",
        f"reconciler.github_server = {reconciler.github_server or '-'}",
        f"reconciler.github_pat = [redacted] (length {len(reconciler.github_pat)})",
    ]


def _redact_url(url: str) -> str:
    scheme, separator, rest = url.partition("://")
    credentials, at, host = rest.rpartition("@")
    if not separator or not at:
        return url
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


def _parse_port(port_str: str) -> int:
    try:
        port = int(port_str)
    except ValueError as exc:
        msg = f"MIRRORSYNC_PORT must be an integer, got: {port_str!r}"
        raise ConfigError([msg]) from exc
    if not _MIN_PORT <= port <= _MAX_PORT:
        msg = f"MIRRORSYNC_PORT {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
        raise ConfigError([msg])
    return port


def _read_yaml(path: Path) -> object:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False

    try:
        loaded = yaml.load(path.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        raise ConfigError([f"failed to load {path}: {exc}"]) from exc
    return {} if loaded is None else loaded
