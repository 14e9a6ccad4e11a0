"""Validation of repository identifiers used as relative mirror paths."""

from __future__ import annotations

__all__ = ["is_safe_repo_identifier"]

_FORBIDDEN_SEGMENTS = frozenset({"", ".", ".."})


def is_safe_repo_identifier(repo: str) -> bool:
    """Return whether ``repo`` names a directory strictly below the mirror tree.

    Identifiers must be relative, free of control characters, and made of
    non-empty ``/`` segments other than ``.`` and ``..``.

    Examples
    --------
    >>> is_safe_repo_identifier("github.com/acme/widgets")
    True
    >>> is_safe_repo_identifier("github.com/.")
    False

    """
    if not repo or any(ord(char) < 0x20 or ord(char) == 0x7F for char in repo):
        return False
    return _FORBIDDEN_SEGMENTS.isdisjoint(repo.split("/"))
