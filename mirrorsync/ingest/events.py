"""Typed webhook payloads accepted by the ingest service.

Only the subset of the GitHub push payload that mirrorsync reads is declared;
unknown fields are ignored when decoding.
"""

from __future__ import annotations

import enum

import msgspec

from mirrorsync.common.identifiers import is_safe_repo_identifier
from mirrorsync.ingest.errors import RepoParseError

_SCHEME_SEPARATOR = "//"


class ChangeOperation(enum.StrEnum):
    """Registry mutations an event can request."""

    CREATE = "create"
    DELETE = "delete"


class CommitAuthor(msgspec.Struct, kw_only=True):
    """Author block of the head commit."""

    name: str = ""
    email: str = ""
    username: str = ""


class HeadCommit(msgspec.Struct, kw_only=True):
    """Head commit of the push that triggered the webhook."""

    id: str = ""
    message: str = ""
    author: CommitAuthor = msgspec.field(default_factory=CommitAuthor)


class RepositoryLinks(msgspec.Struct, kw_only=True):
    """Repository URLs carried by the webhook.

    ``svn_url`` is the browser URL (``https://host/owner/name``) and is the
    one mirrorsync derives identifiers from.
    """

    svn_url: str = ""
    ssh_url: str = ""
    clone_url: str = ""
    git_url: str = ""


class RepositoryChangeEvent(msgspec.Struct, kw_only=True):
    """Webhook body describing a change to one repository."""

    ref: str = ""
    repository: RepositoryLinks = msgspec.field(default_factory=RepositoryLinks)
    head_commit: HeadCommit = msgspec.field(default_factory=HeadCommit)


def decode_event(body: bytes) -> RepositoryChangeEvent:
    """Decode a JSON webhook body.

    Raises
    ------
    msgspec.DecodeError
        If the body is not valid JSON or does not match the event shape.

    """
    return msgspec.json.decode(body, type=RepositoryChangeEvent)


def parse_repo_identifier(url: str) -> str:
    """Return the canonical repository identifier for ``url``.

    The identifier is everything after the scheme separator, which is also
    the import path ``go get`` expects. Identifiers with empty, ``.`` or ``..``
    segments, or with control characters, are rejected.

    Examples
    --------
    >>> parse_repo_identifier("https://github.com/acme/widgets")
    'github.com/acme/widgets'

    """
    _, separator, remainder = url.partition(_SCHEME_SEPARATOR)
    if not separator or not is_safe_repo_identifier(remainder):
        raise RepoParseError(url)
    return remainder
