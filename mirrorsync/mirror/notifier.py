"""Best-effort notification of the service that consumes the mirrors.

After a reconciliation pass the dependent service (for example a ``godoc``
server reading ``$GOPATH/src``) is told that mirror state changed. Failures
are logged and swallowed: a consumer that cannot be restarted must never fail
reconciliation.
"""

from __future__ import annotations

import os
import typing as typ

import httpx

from mirrorsync.logging import get_logger, log_info, log_warning
from mirrorsync.mirror.errors import MirrorCommandError
from mirrorsync.mirror.executor import run_command

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from mirrorsync.mirror.executor import CommandRunner

logger = get_logger(__name__)

DEFAULT_NOTIFY_COMMAND = ("sudo", "/bin/systemctl", "restart", "godocs.service")
DEFAULT_NOTIFY_TIMEOUT_S = 10.0


class ServiceNotifier(typ.Protocol):
    """Capability to signal the dependent service."""

    async def notify(self) -> None:
        """Signal the dependent service; never raises."""
        ...


class NullServiceNotifier:
    """Notifier used when no dependent service is configured."""

    async def notify(self) -> None:
        """Do nothing."""


class CommandServiceNotifier:
    """Signal the dependent service by running a command."""

    def __init__(
        self,
        command: cabc.Sequence[str] = DEFAULT_NOTIFY_COMMAND,
        *,
        env: cabc.Mapping[str, str] | None = None,
        runner: CommandRunner = run_command,
    ) -> None:
        """Configure the command, its environment and the runner."""
        self._command = tuple(command)
        self._env = dict(os.environ if env is None else env)
        self._runner = runner

    async def notify(self) -> None:
        """Run the notify command, logging any failure."""
        try:
            await self._runner(self._command, self._env)
        except MirrorCommandError as exc:
            log_warning(
                logger,
                "Service notification %r failed (exit %s): %s",
                " ".join(exc.argv),
                exc.returncode,
                exc.output.strip(),
            )
            return
        log_info(logger, "Notified dependent service via %r", " ".join(self._command))


class HttpServiceNotifier:
    """Signal the dependent service with an HTTP POST."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = DEFAULT_NOTIFY_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Configure the target URL, timeout and optional test transport."""
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    async def notify(self) -> None:
        """POST to the configured URL, logging any failure."""
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s, transport=self._transport
            ) as client:
                response = await client.post(
                    self._url, json={"event": "mirrors.changed"}
                )
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log_warning(logger, "Service notification to %s failed: %s", self._url, exc)
            return
        log_info(logger, "Notified dependent service at %s", self._url)
