"""Falcon error handlers for the ingest API.

Domain exceptions raised by the ingestor and the registry are translated into
JSON error bodies of the form ``{"title": ..., "description": ...}``.

Usage
-----
Register every handler on the Falcon app::

    from mirrorsync.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from mirrorsync.ingest.errors import (
    ProtectedKeyError,
    RepoNotFoundError,
    RepoParseError,
    UnknownOperationError,
)
from mirrorsync.logging import get_logger, log_warning
from mirrorsync.registry.errors import CounterConflictError, RegistryUnavailableError

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "handle_counter_conflict",
    "handle_invalid_input",
    "handle_protected_key",
    "handle_registry_unavailable",
    "handle_repo_not_found",
    "handle_unprocessable_change",
    "register_error_handlers",
]

logger = get_logger(__name__)


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_unprocessable_change(
    _req: Request,
    resp: Response,
    ex: RepoParseError | UnknownOperationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map URL parse and unknown-operation failures to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = {"title": "Invalid input", "description": str(ex)}


async def handle_protected_key(
    _req: Request,
    resp: Response,
    ex: ProtectedKeyError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ProtectedKeyError`` to HTTP 403."""
    log_warning(logger, "Rejected change to protected identifier %s", ex.repo)
    resp.status = falcon.HTTP_403
    resp.media = {"title": "Protected identifier", "description": str(ex)}


async def handle_repo_not_found(
    _req: Request,
    resp: Response,
    ex: RepoNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RepoNotFoundError`` to HTTP 404."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Repository not found", "description": str(ex)}


async def handle_registry_unavailable(
    _req: Request,
    resp: Response,
    ex: RegistryUnavailableError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RegistryUnavailableError`` to HTTP 503."""
    log_warning(logger, "Registry unavailable during %s", ex.operation)
    resp.status = falcon.HTTP_503
    resp.media = {"title": "Registry unavailable", "description": str(ex)}


async def handle_counter_conflict(
    _req: Request,
    resp: Response,
    ex: CounterConflictError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``CounterConflictError`` to HTTP 503.

    The repository mutation has already been applied, so a retried request
    re-applies it and publishes a fresh counter value.
    """
    log_warning(logger, "Trigger counter bump gave up after %d attempts", ex.attempts)
    resp.status = falcon.HTTP_503
    resp.media = {"title": "Trigger counter contention", "description": str(ex)}


def register_error_handlers(app: App) -> None:
    """Register every domain error handler on ``app``."""
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(RepoParseError, handle_unprocessable_change)
    app.add_error_handler(UnknownOperationError, handle_unprocessable_change)
    app.add_error_handler(ProtectedKeyError, handle_protected_key)
    app.add_error_handler(RepoNotFoundError, handle_repo_not_found)
    app.add_error_handler(RegistryUnavailableError, handle_registry_unavailable)
    app.add_error_handler(CounterConflictError, handle_counter_conflict)
