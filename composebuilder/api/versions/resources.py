"""API resources for manual version refreshes and sync status.

Routes
------
``POST /templates/versions/refresh``
    Sweep the whole catalog.
``POST /templates/{entry_id}/versions/refresh``
    Refresh a single catalog entry.
``GET /templates/versions/status``
    Report whether registry synchronisation is enabled.
``GET /templates/versions/scheduler``
    Report the scheduler's lifecycle state.

Both refresh routes answer ``{"enabled", "updated", "result"}``; ``result`` is
``null`` when synchronisation is disabled.
"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from composebuilder.versions.config import ConfigGate
    from composebuilder.versions.models import (
        SweepReport,
        SyncOutcome,
        VersionCheckResult,
    )
    from composebuilder.versions.scheduler import SchedulerState, VersionScheduler

__all__ = [
    "CatalogRefreshResource",
    "EntryRefreshResource",
    "SchedulerStateResource",
    "SyncStatusResource",
]


def _serialize_result(result: VersionCheckResult) -> dict[str, typ.Any]:
    """Serialize one entry's check result to a JSON-compatible dict."""
    error = None
    if result.error is not None:
        error = {"kind": str(result.error.kind), "message": result.error.message}
    return {
        "entry_id": result.entry_id,
        "changed": result.changed,
        "previous_version": result.previous_version,
        "new_version": result.new_version,
        "error": error,
        "skipped": str(result.skipped) if result.skipped is not None else None,
    }


def _serialize_report(report: SweepReport) -> dict[str, typ.Any]:
    """Serialize a sweep report, results in catalog order."""
    return {
        "checked": len(report.results),
        "changed": report.changed_count,
        "failed": report.failed_count,
        "skipped": report.skipped_count,
        "results": [_serialize_result(result) for result in report.results],
    }


def _serialize_state(state: SchedulerState) -> dict[str, typ.Any]:
    return {
        "status": str(state.status),
        "started": state.started,
        "sweep_in_progress": state.sweep_in_progress,
        "last_sweep_at": (
            state.last_sweep_at.isoformat() if state.last_sweep_at else None
        ),
        "tick_interval_seconds": state.tick_interval_seconds,
    }


def _outcome_media(
    outcome: SyncOutcome, result: dict[str, typ.Any] | None
) -> dict[str, typ.Any]:
    return {"enabled": outcome.enabled, "updated": outcome.updated, "result": result}


class CatalogRefreshResource:
    """Manual trigger for a sweep over the whole catalog."""

    def __init__(self, scheduler: VersionScheduler) -> None:
        """Bind the resource to the process-wide scheduler."""
        self._scheduler = scheduler

    async def on_post(self, _req: Request, resp: Response) -> None:
        """Handle POST /templates/versions/refresh.

        ``SweepInProgressError``, ``SchedulerStoppedError`` and
        ``CatalogSaveError`` propagate to the app's error handlers.
        """
        outcome = await self._scheduler.trigger()
        report = _serialize_report(outcome.report) if outcome.enabled else None
        resp.media = _outcome_media(outcome, report)
        resp.status = falcon.HTTP_200


class EntryRefreshResource:
    """Manual trigger for a single catalog entry."""

    def __init__(self, scheduler: VersionScheduler) -> None:
        """Bind the resource to the process-wide scheduler."""
        self._scheduler = scheduler

    async def on_post(self, _req: Request, resp: Response, *, entry_id: str) -> None:
        """Handle POST /templates/{entry_id}/versions/refresh.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response object.
        entry_id
            Catalog entry identifier from the URL path.

        """
        outcome = await self._scheduler.trigger(entry_id)
        result = None
        if outcome.enabled and outcome.report.results:
            result = _serialize_result(outcome.report.results[0])
        resp.media = _outcome_media(outcome, result)
        resp.status = falcon.HTTP_200


class SyncStatusResource:
    """Report whether registry synchronisation is configured."""

    def __init__(self, gate: ConfigGate) -> None:
        """Bind the resource to the configuration gate."""
        self._gate = gate

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /templates/versions/status."""
        resp.media = {"enabled": self._gate.is_enabled()}
        resp.status = falcon.HTTP_200


class SchedulerStateResource:
    """Expose the scheduler's lifecycle snapshot."""

    def __init__(self, scheduler: VersionScheduler) -> None:
        """Bind the resource to the process-wide scheduler."""
        self._scheduler = scheduler

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /templates/versions/scheduler."""
        resp.media = _serialize_state(self._scheduler.state)
        resp.status = falcon.HTTP_200
