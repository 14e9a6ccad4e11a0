"""In-memory state owned by the reconciliation loop."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@dataclasses.dataclass(slots=True)
class ReconcilerState:
    """What the reconciler believes about local mirrors.

    The state is process-local and starts empty, so the first pass after a
    restart re-fetches every desired repository.

    Attributes
    ----------
    observed_count
        Trigger counter value the last completed pass reconciled against.

    """

    observed_count: int = 0
    _mirrors: dict[str, None] = dataclasses.field(default_factory=dict)

    @property
    def local_mirrors(self) -> tuple[str, ...]:
        """Return known mirrors in the order they were first ensured."""
        return tuple(self._mirrors)

    def remember(self, repos: cabc.Iterable[str]) -> None:
        """Add ``repos`` to the local mirror set, ignoring duplicates."""
        for repo in repos:
            self._mirrors.setdefault(repo, None)
