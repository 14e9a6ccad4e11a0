"""Webhook ingestion into the repository registry."""

from mirrorsync.ingest.errors import (
    IngestError,
    ProtectedKeyError,
    RepoNotFoundError,
    RepoParseError,
    UnknownOperationError,
)
from mirrorsync.ingest.events import (
    ChangeOperation,
    RepositoryChangeEvent,
    decode_event,
    parse_repo_identifier,
)
from mirrorsync.ingest.service import ChangeResult, EventIngestor

__all__ = [
    "ChangeOperation",
    "ChangeResult",
    "EventIngestor",
    "IngestError",
    "ProtectedKeyError",
    "RepoNotFoundError",
    "RepoParseError",
    "RepositoryChangeEvent",
    "UnknownOperationError",
    "decode_event",
    "parse_repo_identifier",
]
