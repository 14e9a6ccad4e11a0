"""Data transfer objects for the repository registry."""

from __future__ import annotations

import dataclasses

DEFAULT_TRIGGER_KEY = "00000trigger"


@dataclasses.dataclass(slots=True, frozen=True)
class RepoRecord:
    """Metadata for one tracked repository.

    ``repo`` is the canonical identifier parsed from the repository URL
    (``host/owner/name``); the remaining fields describe the head commit of
    the most recent push.
    """

    repo: str
    last_commit_id: str = ""
    last_commit_message: str = ""
    last_commit_user: str = ""


@dataclasses.dataclass(slots=True, frozen=True)
class TriggerRecord:
    """The reserved row holding the registry's logical version."""

    repo: str
    count: int = 0


type RegistryRecord = RepoRecord | TriggerRecord
