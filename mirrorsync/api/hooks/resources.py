"""Webhook resources for repository create and delete events.

Both routes accept the same JSON push payload and differ only in the change
operation they request. The response reports the identifier touched and the
trigger counter value published for it.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from mirrorsync.api.errors import InvalidInputError
from mirrorsync.ingest.events import ChangeOperation, decode_event

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from mirrorsync.ingest.service import EventIngestor

__all__ = ["ChangeResource"]


class ChangeResource:
    """Apply one change operation for each POSTed webhook body.

    Parameters
    ----------
    ingestor
        Service that writes the registry and bumps the trigger counter.
    operation
        Operation requested by every request routed to this resource.

    """

    def __init__(self, ingestor: EventIngestor, operation: ChangeOperation) -> None:
        """Bind the resource to an ingestor and an operation."""
        self._ingestor = ingestor
        self._operation = operation

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /hook and POST /delete.

        Raises
        ------
        InvalidInputError
            If the body is not a JSON event or lacks ``repository.svn_url``.

        """
        body = await req.stream.read()
        try:
            event = decode_event(body)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc)) from exc

        if not event.repository.svn_url:
            raise InvalidInputError("is required", field="repository.svn_url")

        result = await self._ingestor.apply_change(event, self._operation)
        resp.media = {
            "repo": result.repo,
            "operation": str(result.operation),
            "count": result.count,
        }
        resp.status = HTTPStatus.OK
