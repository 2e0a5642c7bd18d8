"""Emit structured observability events for version synchronisation.

This module defines event identifiers and a logger wrapper used by the
refresher and scheduler to report sweep lifecycle and per-entry failures.

Usage
-----
>>> event_logger = VersionSyncEventLogger()
>>> event_logger.log_sweep_started(trigger=SweepTrigger.MANUAL, entry_count=7)

"""

from __future__ import annotations

import enum
import typing as typ

from composebuilder.logging import LogLevel, get_logger, log_event

if typ.TYPE_CHECKING:
    import datetime as dt

    from composebuilder.versions.errors import ErrorKind
    from composebuilder.versions.models import SweepReport

logger = get_logger(__name__)


class SweepTrigger(enum.StrEnum):
    """What started a sweep."""

    PERIODIC = "periodic"
    MANUAL = "manual"


class VersionSyncEventType(enum.StrEnum):
    """Structured log event types for version synchronisation."""

    SWEEP_STARTED = "versions.sweep.started"
    SWEEP_COMPLETED = "versions.sweep.completed"
    SWEEP_DROPPED = "versions.sweep.dropped"
    SWEEP_FAILED = "versions.sweep.failed"
    CHECK_RETRYING = "versions.check.retrying"
    CHECK_FAILED = "versions.check.failed"
    CHECK_CRASHED = "versions.check.crashed"
    CATALOG_SAVED = "versions.catalog.saved"
    SCHEDULER_STARTED = "versions.scheduler.started"
    SCHEDULER_STOPPED = "versions.scheduler.stopped"


class VersionSyncEventLogger:
    """Emit version synchronisation events via femtologging."""

    def log_sweep_started(self, *, trigger: SweepTrigger, entry_count: int) -> None:
        """Log the start of a sweep over ``entry_count`` entries."""
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.SWEEP_STARTED,
            trigger=trigger,
            entries=entry_count,
        )

    def log_sweep_completed(
        self,
        *,
        trigger: SweepTrigger,
        report: SweepReport,
        saved_count: int,
        duration: dt.timedelta,
    ) -> None:
        """Log aggregate counts for a finished sweep.

        Parameters
        ----------
        trigger
            Whether the sweep was periodic or manual.
        report
            Results of the sweep; only counts are logged.
        saved_count
            Number of entries written back to the catalog.
        duration
            Wall-clock time the sweep took.

        """
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.SWEEP_COMPLETED,
            trigger=trigger,
            checked=len(report.results),
            changed=report.changed_count,
            failed=report.failed_count,
            skipped=report.skipped_count,
            saved=saved_count,
            duration_seconds=_seconds(duration),
        )

    def log_sweep_dropped(self, *, trigger: SweepTrigger, reason: str) -> None:
        """Log a sweep request that was not executed."""
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.SWEEP_DROPPED,
            trigger=trigger,
            reason=reason,
        )

    def log_sweep_failed(
        self,
        *,
        trigger: SweepTrigger,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a sweep that ended with an exception, traceback attached."""
        log_event(
            logger,
            LogLevel.ERROR,
            VersionSyncEventType.SWEEP_FAILED,
            exc_info=error,
            trigger=trigger,
            duration_seconds=_seconds(duration),
            error_type=type(error).__name__,
            error_message=error,
        )

    def log_check_retrying(self, *, entry_id: str, error: BaseException) -> None:
        """Log a transient check failure that is about to be retried."""
        log_event(
            logger,
            LogLevel.WARNING,
            VersionSyncEventType.CHECK_RETRYING,
            entry_id=entry_id,
            error_message=error,
        )

    def log_check_failed(
        self, *, entry_id: str, kind: ErrorKind, message: str
    ) -> None:
        """Log a check that produced no version for its entry."""
        log_event(
            logger,
            LogLevel.WARNING,
            VersionSyncEventType.CHECK_FAILED,
            entry_id=entry_id,
            kind=kind,
            error_message=message,
        )

    def log_check_crashed(self, *, entry_id: str, error: Exception) -> None:
        """Log an unexpected exception raised while checking one entry."""
        log_event(
            logger,
            LogLevel.ERROR,
            VersionSyncEventType.CHECK_CRASHED,
            exc_info=error,
            entry_id=entry_id,
            error_type=type(error).__name__,
            error_message=error,
        )

    def log_catalog_saved(
        self,
        *,
        saved_count: int,
        skipped_ids: list[str],
        edited_ids: list[str] | None = None,
    ) -> None:
        """Log a catalog write and the changed entries it left alone.

        ``skipped_ids`` no longer exist; ``edited_ids`` had their image or
        channel changed after the sweep read them.
        """
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.CATALOG_SAVED,
            saved=saved_count,
            vanished=",".join(skipped_ids) or "-",
            edited=",".join(edited_ids or ()) or "-",
        )

    def log_scheduler_started(
        self, *, armed: bool, interval_s: float, run_on_start: bool
    ) -> None:
        """Log scheduler start-up and whether the periodic timer was armed."""
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.SCHEDULER_STARTED,
            armed=armed,
            interval_seconds=f"{interval_s:g}",
            run_on_start=run_on_start,
        )

    def log_scheduler_stopped(self, *, last_sweep_at: dt.datetime | None) -> None:
        """Log scheduler shutdown."""
        log_event(
            logger,
            LogLevel.INFO,
            VersionSyncEventType.SCHEDULER_STOPPED,
            last_sweep_at=last_sweep_at.isoformat() if last_sweep_at else "-",
        )


def _seconds(duration: dt.timedelta) -> str:
    return f"{duration.total_seconds():.3f}"
