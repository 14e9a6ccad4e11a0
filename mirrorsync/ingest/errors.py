"""Errors raised while applying webhook changes to the registry."""

from __future__ import annotations


class IngestError(Exception):
    """Base class for ingest errors that reject a change without mutation."""


class RepoParseError(IngestError):
    """Raised when a repository identifier cannot be derived from a URL."""

    def __init__(self, url: str) -> None:
        """Initialise with the offending source URL."""
        self.url = url
        super().__init__(f"Cannot derive repository name from URL {url!r}")


class ProtectedKeyError(IngestError):
    """Raised when a webhook targets the reserved trigger identifier."""

    def __init__(self, repo: str) -> None:
        """Initialise with the protected identifier."""
        self.repo = repo
        super().__init__(f"Repository {repo!r} is reserved and cannot be changed")


class RepoNotFoundError(IngestError):
    """Raised when a delete targets a repository absent from the registry."""

    def __init__(self, repo: str) -> None:
        """Initialise with the missing identifier."""
        self.repo = repo
        super().__init__(f"Repository not found: {repo}")


class UnknownOperationError(IngestError):
    """Raised for a change operation other than create or delete."""

    def __init__(self, operation: object) -> None:
        """Initialise with the unsupported operation."""
        self.operation = operation
        super().__init__(f"Unknown change operation {operation!r}")
