"""Structured log events for the watcher and reconciler.

Events are emitted as ``[event.type] key=value`` lines through stdlib logging
so log aggregators can count passes, failures, and per-repository errors
without parsing free text.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import typing as typ

from mirrorsync.mirror.errors import (
    MirrorCommandError,
    MissingRootError,
    UnsafeMirrorPathError,
)
from mirrorsync.registry.errors import RegistryUnavailableError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .reconciler import ReconcileResult

logger = logging.getLogger(__name__)


class ReconcileEventType(enum.StrEnum):
    """Structured log event types for reconciliation."""

    COUNTER_CHANGED = "watcher.counter.changed"
    COUNTER_UNCHANGED = "watcher.counter.unchanged"
    RUN_STARTED = "reconcile.run.started"
    RUN_COMPLETED = "reconcile.run.completed"
    RUN_FAILED = "reconcile.run.failed"
    FETCH_FAILED = "reconcile.fetch.failed"
    REMOVE_FAILED = "reconcile.remove.failed"
    NOTIFY_FAILED = "reconcile.notify.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    REGISTRY_UNAVAILABLE = "registry_unavailable"
    CONFIGURATION = "configuration"
    COMMAND = "command"
    UNSAFE_PATH = "unsafe_path"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (RegistryUnavailableError, ErrorCategory.REGISTRY_UNAVAILABLE),
    (MissingRootError, ErrorCategory.CONFIGURATION),
    (MirrorCommandError, ErrorCategory.COMMAND),
    (UnsafeMirrorPathError, ErrorCategory.UNSAFE_PATH),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


@dataclasses.dataclass(frozen=True, slots=True)
class ReconcileRunContext:
    """Shared context for a single reconciliation pass."""

    local_mirrors: int
    started_at: dt.datetime


class ReconcileEventLogger:
    """Emit structured reconciliation events via Python logging."""

    def log_counter_changed(self, observed: int, current: int) -> None:
        """Log that the trigger counter moved since the last pass."""
        logger.info(
            "[%s] observed_count=%d current_count=%d",
            ReconcileEventType.COUNTER_CHANGED,
            observed,
            current,
        )

    def log_counter_unchanged(self, current: int) -> None:
        """Log a poll that found nothing to do."""
        logger.debug(
            "[%s] current_count=%d", ReconcileEventType.COUNTER_UNCHANGED, current
        )

    def log_run_started(self, context: ReconcileRunContext) -> None:
        """Log reconciliation start."""
        logger.info(
            "[%s] local_mirrors=%d started_at=%s",
            ReconcileEventType.RUN_STARTED,
            context.local_mirrors,
            context.started_at.isoformat(),
        )

    def log_run_completed(
        self,
        context: ReconcileRunContext,
        result: ReconcileResult,
        duration: dt.timedelta,
    ) -> None:
        """Log a completed pass with its fetch and remove totals."""
        logger.info(
            "[%s] duration_seconds=%.3f desired=%d fetched=%d fetch_failed=%d "
            "to_remove=%d removed=%d remove_failed=%d local_mirrors=%d",
            ReconcileEventType.RUN_COMPLETED,
            duration.total_seconds(),
            len(result.plan.to_fetch),
            len(result.fetched),
            len(result.fetch_failures),
            len(result.plan.to_remove),
            len(result.removed),
            len(result.remove_failures),
            context.local_mirrors,
        )

    def log_run_failed(
        self,
        context: ReconcileRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a pass that failed as a whole."""
        logger.error(
            "[%s] duration_seconds=%.3f local_mirrors=%d error_type=%s "
            "error_category=%s error_message=%s",
            ReconcileEventType.RUN_FAILED,
            duration.total_seconds(),
            context.local_mirrors,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_fetch_failed(self, repo: str, error: BaseException) -> None:
        """Log a fetch failure that the pass skipped over."""
        self._log_repo_failure(ReconcileEventType.FETCH_FAILED, repo, error)

    def log_remove_failed(self, repo: str, error: BaseException) -> None:
        """Log a remove failure that the pass skipped over."""
        self._log_repo_failure(ReconcileEventType.REMOVE_FAILED, repo, error)

    def log_notify_failed(self, error: BaseException) -> None:
        """Log a notifier error that the pass swallowed."""
        logger.warning(
            "[%s] error_type=%s error_message=%s",
            ReconcileEventType.NOTIFY_FAILED,
            type(error).__name__,
            str(error),
        )

    def _log_repo_failure(
        self, event: ReconcileEventType, repo: str, error: BaseException
    ) -> None:
        output = error.output.strip() if isinstance(error, MirrorCommandError) else ""
        logger.warning(
            "[%s] repo=%s error_category=%s error_message=%s output=%r",
            event,
            repo,
            categorize_error(error),
            str(error),
            output,
        )
