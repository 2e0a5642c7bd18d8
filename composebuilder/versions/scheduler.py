"""Process-wide scheduler for catalog version sweeps.

The scheduler owns the only path from a trigger to the catalog store.  It
guarantees that at most one sweep runs at a time: periodic ticks that find a
sweep in flight are dropped, while manual triggers are rejected with
:class:`SweepInProgressError` so the caller can retry.

Usage
-----
Build once per process and start it from the ASGI lifespan hook:

>>> scheduler = VersionScheduler(
...     SchedulerDependencies(gate=gate, store=store, refresher=refresher,
...                           merger=MergeCoordinator(store)),
...     VersionSyncConfig.from_env(),
... )
>>> scheduler.ensure_started()
>>> outcome = await scheduler.trigger()
>>> await scheduler.stop()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import enum
import time
import typing as typ

from composebuilder.catalog.store import CatalogStoreError
from composebuilder.logging import get_logger, log_exception
from composebuilder.versions.config import VersionSyncConfig
from composebuilder.versions.errors import (
    CatalogEntryNotFoundError,
    CatalogSaveError,
    SchedulerStoppedError,
    SweepInProgressError,
)
from composebuilder.versions.models import SweepReport, SyncOutcome
from composebuilder.versions.observability import (
    SweepTrigger,
    VersionSyncEventLogger,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from composebuilder.catalog.models import CatalogEntry
    from composebuilder.catalog.store import CatalogStore
    from composebuilder.versions.config import ConfigGate
    from composebuilder.versions.merge import MergeCoordinator
    from composebuilder.versions.refresher import BatchRefresher

logger = get_logger(__name__)

_DROP_REASON_BUSY = "sweep_in_progress"
_DROP_REASON_STOPPED = "scheduler_stopped"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class SchedulerStatus(enum.StrEnum):
    """Lifecycle states of :class:`VersionScheduler`."""

    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    SWEEPING = "sweeping"
    STOPPED = "stopped"


@dc.dataclass(frozen=True, slots=True)
class SchedulerState:
    """Point-in-time snapshot of the scheduler for status endpoints.

    Attributes
    ----------
    status
        Current lifecycle state.
    started
        Whether :meth:`VersionScheduler.ensure_started` has run.
    sweep_in_progress
        Whether a sweep currently holds the mutual-exclusion flag.
    last_sweep_at
        When the most recent sweep finished, successfully or not.
    tick_interval_seconds
        Configured period between periodic sweeps.

    """

    status: SchedulerStatus
    started: bool
    sweep_in_progress: bool
    last_sweep_at: dt.datetime | None
    tick_interval_seconds: float


@dc.dataclass(frozen=True, slots=True)
class SchedulerDependencies:
    """Collaborators the scheduler drives during a sweep.

    Attributes
    ----------
    gate
        Decides whether synchronisation is enabled at all.
    store
        Catalog snapshot source.
    refresher
        Runs the registry checks.
    merger
        Writes changed versions back to ``store``.

    """

    gate: ConfigGate
    store: CatalogStore
    refresher: BatchRefresher
    merger: MergeCoordinator


class VersionScheduler:
    """Single-flight coordinator for periodic and manual version sweeps.

    The mutual-exclusion flag is a plain attribute.  It is checked and set
    without an intervening ``await``, which is sufficient on a single event
    loop.  No asyncio primitives are created before :meth:`ensure_started`,
    so an instance can be built outside a running loop.
    """

    def __init__(
        self,
        dependencies: SchedulerDependencies,
        config: VersionSyncConfig | None = None,
        *,
        event_logger: VersionSyncEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        """Configure the scheduler.

        Parameters
        ----------
        dependencies
            Gate, store, refresher and merge coordinator.
        config
            Tick interval, sweep deadline and start-up behaviour.
        event_logger
            Structured logger for sweep lifecycle events.
        clock
            Source of ``last_sweep_at`` timestamps.

        """
        self._deps = dependencies
        self._config = config or VersionSyncConfig()
        self._event_logger = event_logger or VersionSyncEventLogger()
        self._clock = clock
        self._started = False
        self._stopped = False
        self._sweeping = False
        self._last_sweep_at: dt.datetime | None = None
        self._timer: asyncio.Task[None] | None = None
        self._tick_tasks: set[asyncio.Task[SyncOutcome | None]] = set()

    @property
    def state(self) -> SchedulerState:
        """Return a snapshot of the scheduler's current state."""
        return SchedulerState(
            status=self._status(),
            started=self._started,
            sweep_in_progress=self._sweeping,
            last_sweep_at=self._last_sweep_at,
            tick_interval_seconds=self._config.tick_interval_s,
        )

    def ensure_started(self) -> bool:
        """Arm the periodic timer once per scheduler instance.

        Safe to call any number of times.  The timer is only armed while
        synchronisation is enabled; a disabled gate still marks the
        scheduler as started so later calls stay no-ops.  Must be called
        from a running event loop.

        Returns
        -------
        bool
            ``True`` only for the call that armed the timer.

        """
        if self._started or self._stopped:
            return False
        self._started = True

        enabled = self._deps.gate.is_enabled()
        self._event_logger.log_scheduler_started(
            armed=enabled,
            interval_s=self._config.tick_interval_s,
            run_on_start=self._config.run_on_start,
        )
        if not enabled:
            return False

        self._timer = asyncio.create_task(
            self._run_timer(), name="version-sync-timer"
        )
        return True

    async def trigger(self, entry_id: str | None = None) -> SyncOutcome:
        """Run a manual sweep of the whole catalog or of a single entry.

        Parameters
        ----------
        entry_id
            Restrict the sweep to this catalog entry.

        Returns
        -------
        SyncOutcome
            Disabled outcome when synchronisation is off; otherwise the
            sweep report and how many entries were written back.

        Raises
        ------
        SchedulerStoppedError
            After :meth:`stop` has been called.
        SweepInProgressError
            While another sweep holds the mutual-exclusion flag.
        CatalogEntryNotFoundError
            When ``entry_id`` names no catalog entry.
        CatalogSaveError
            When the catalog cannot be re-read or written.

        """
        if self._stopped:
            raise SchedulerStoppedError
        if not self._deps.gate.is_enabled():
            return SyncOutcome.disabled()
        if self._sweeping:
            raise SweepInProgressError
        return await self._run_exclusive(SweepTrigger.MANUAL, entry_id)

    async def tick(self) -> SyncOutcome | None:
        """Run one periodic sweep.

        Returns ``None`` when the tick was dropped or the sweep failed; both
        cases are logged and the next tick proceeds normally.
        """
        if self._stopped:
            self._event_logger.log_sweep_dropped(
                trigger=SweepTrigger.PERIODIC, reason=_DROP_REASON_STOPPED
            )
            return None
        if not self._deps.gate.is_enabled():
            return SyncOutcome.disabled()
        if self._sweeping:
            self._event_logger.log_sweep_dropped(
                trigger=SweepTrigger.PERIODIC, reason=_DROP_REASON_BUSY
            )
            return None
        try:
            return await self._run_exclusive(SweepTrigger.PERIODIC, None)
        except (CatalogSaveError, CatalogStoreError):
            # Already reported through log_sweep_failed.
            return None

    async def stop(self) -> None:
        """Stop the timer and wait for the in-flight periodic sweep.

        Sweeps still running stop launching new registry checks; checks
        already in flight finish.  Manual triggers are rejected from now on.
        """
        if self._stopped:
            return
        self._stopped = True

        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)

        self._event_logger.log_scheduler_stopped(last_sweep_at=self._last_sweep_at)

    def _status(self) -> SchedulerStatus:
        if self._stopped:
            return SchedulerStatus.STOPPED
        if self._sweeping:
            return SchedulerStatus.SWEEPING
        if self._started:
            return SchedulerStatus.IDLE
        return SchedulerStatus.UNINITIALIZED

    def _should_stop(self) -> bool:
        return self._stopped

    async def _run_timer(self) -> None:
        delay = 0.0 if self._config.run_on_start else self._config.tick_interval_s
        while not self._stopped:
            await asyncio.sleep(delay)
            self._spawn_tick()
            delay = self._config.tick_interval_s

    def _spawn_tick(self) -> None:
        """Start a periodic sweep as its own task so the timer keeps time."""
        if self._sweeping:
            self._event_logger.log_sweep_dropped(
                trigger=SweepTrigger.PERIODIC, reason=_DROP_REASON_BUSY
            )
            return
        task = asyncio.create_task(self.tick(), name="version-sync-tick")
        self._tick_tasks.add(task)
        task.add_done_callback(self._on_tick_done)

    def _on_tick_done(self, task: asyncio.Task[SyncOutcome | None]) -> None:
        self._tick_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_exception(logger, "Periodic version sweep crashed", exc)

    async def _run_exclusive(
        self, trigger: SweepTrigger, entry_id: str | None
    ) -> SyncOutcome:
        """Run one sweep while holding the mutual-exclusion flag."""
        self._sweeping = True
        started = time.perf_counter()
        try:
            entries = _select_entries(self._deps.store.load(), entry_id)
            self._event_logger.log_sweep_started(
                trigger=trigger, entry_count=len(entries)
            )
            report = await self._sweep(entries, single=entry_id is not None)
            saved_count = self._deps.merger.apply_report(report)
        except Exception as exc:
            if not isinstance(exc, CatalogEntryNotFoundError):
                self._event_logger.log_sweep_failed(
                    trigger=trigger,
                    error=exc,
                    duration=_elapsed(started),
                )
            raise
        finally:
            self._sweeping = False
            self._last_sweep_at = self._clock()

        self._event_logger.log_sweep_completed(
            trigger=trigger,
            report=report,
            saved_count=saved_count,
            duration=_elapsed(started),
        )
        return SyncOutcome(enabled=True, report=report, saved_count=saved_count)

    async def _sweep(
        self, entries: list[CatalogEntry], *, single: bool
    ) -> SweepReport:
        refresher = self._deps.refresher
        if single:
            result = await refresher.refresh_one(
                entries[0], should_stop=self._should_stop
            )
            return SweepReport(results=(result,))
        return await refresher.refresh_all(
            entries,
            deadline_s=self._config.sweep_deadline_s,
            should_stop=self._should_stop,
        )


def _select_entries(
    entries: list[CatalogEntry], entry_id: str | None
) -> list[CatalogEntry]:
    if entry_id is None:
        return entries
    for entry in entries:
        if entry.id == entry_id:
            return [entry]
    raise CatalogEntryNotFoundError(entry_id)


def _elapsed(started: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.perf_counter() - started)
