"""Concurrency-bounded registry sweeps over catalog entries.

The refresher turns a snapshot of catalog entries into a :class:`SweepReport`.
It never touches the catalog store; persisting the outcome is the job of
:class:`composebuilder.versions.merge.MergeCoordinator`.

Every entry is checked in its own task behind a shared semaphore, so one
slow or failing image cannot abort or hold up the others.  Results are
collected by input position, which keeps the report in catalog order however
the checks complete.
"""

from __future__ import annotations

import asyncio
import typing as typ

from composebuilder.versions.config import VersionSyncConfig
from composebuilder.versions.errors import (
    ErrorKind,
    RegistryError,
    VersionSyncConfigError,
)
from composebuilder.versions.models import SkipReason, SweepReport, VersionCheckResult
from composebuilder.versions.observability import VersionSyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from composebuilder.catalog.models import CatalogEntry
    from composebuilder.versions.client import VersionSource
    from composebuilder.versions.config import ConfigGate
    from composebuilder.versions.models import VersionCheck

    type StopCheck = cabc.Callable[[], bool]


def _never_stop() -> bool:
    return False


class BatchRefresher:
    """Check catalog entries against the registry with bounded concurrency.

    Parameters
    ----------
    gate
        Reports whether synchronisation is enabled; when it is not, every
        operation returns an empty result without network traffic.
    client
        Registry version source.  May be ``None`` only while the gate is
        disabled.
    config
        Concurrency ceiling and retry backoff.
    event_logger
        Structured logger for retries and failed checks.

    """

    def __init__(
        self,
        gate: ConfigGate,
        client: VersionSource | None,
        config: VersionSyncConfig | None = None,
        *,
        event_logger: VersionSyncEventLogger | None = None,
    ) -> None:
        """Wire the refresher to its gate, registry client and settings."""
        if client is None and gate.is_enabled():
            raise VersionSyncConfigError.missing_client()
        self._gate = gate
        self._client = client
        self._config = config or VersionSyncConfig()
        self._event_logger = event_logger or VersionSyncEventLogger()

    async def refresh_all(
        self,
        entries: cabc.Sequence[CatalogEntry],
        *,
        deadline_s: float | None = None,
        should_stop: StopCheck | None = None,
    ) -> SweepReport:
        """Check every entry and return one result per entry, in input order.

        Parameters
        ----------
        entries
            Snapshot of catalog entries to check.
        deadline_s
            Bound for the whole sweep.  Checks still running when it passes
            are cancelled and reported as ``deadline_exceeded``.
        should_stop
            Polled before each check starts; once it returns ``True`` the
            remaining checks are reported as ``cancelled`` while checks
            already in flight finish normally.

        Returns
        -------
        SweepReport
            Empty and marked disabled when synchronisation is disabled.

        """
        if not self._gate.is_enabled():
            return SweepReport.disabled()
        if not entries:
            return SweepReport()

        stop = should_stop or _never_stop
        semaphore = asyncio.Semaphore(self._config.concurrency)
        tasks = [
            asyncio.create_task(
                self._bounded_refresh(entry, semaphore, stop),
                name=f"version-check:{entry.id}",
            )
            for entry in entries
        ]

        try:
            _done, pending = await asyncio.wait(tasks, timeout=deadline_s)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results: list[VersionCheckResult] = []
        for entry, task in zip(entries, tasks, strict=True):
            if task in pending:
                result = self._failed(
                    entry,
                    ErrorKind.DEADLINE_EXCEEDED,
                    f"check did not finish within the {deadline_s:g}s sweep deadline",
                )
            else:
                result = task.result()
            results.append(result)

        return SweepReport(results=tuple(results))

    async def refresh_one(
        self,
        entry: CatalogEntry,
        *,
        should_stop: StopCheck | None = None,
    ) -> VersionCheckResult:
        """Check a single entry, converting registry failures into its result."""
        if not self._gate.is_enabled():
            return VersionCheckResult.skip(entry, SkipReason.DISABLED)

        skip_reason = self._skip_reason(entry)
        if skip_reason is not None:
            return VersionCheckResult.skip(entry, skip_reason)

        if should_stop is not None and should_stop():
            return VersionCheckResult.failed(
                entry, ErrorKind.CANCELLED, "sweep stopped before the check started"
            )

        try:
            check = await self._check_with_retry(entry)
        except RegistryError as exc:
            return self._failed(entry, exc.kind, str(exc))

        return VersionCheckResult.from_check(entry, check)

    def _failed(
        self, entry: CatalogEntry, kind: ErrorKind, message: str
    ) -> VersionCheckResult:
        self._event_logger.log_check_failed(
            entry_id=entry.id, kind=kind, message=message
        )
        return VersionCheckResult.failed(entry, kind, message)

    async def _bounded_refresh(
        self,
        entry: CatalogEntry,
        semaphore: asyncio.Semaphore,
        should_stop: StopCheck,
    ) -> VersionCheckResult:
        async with semaphore:
            try:
                return await self.refresh_one(entry, should_stop=should_stop)
            except Exception as exc:
                self._event_logger.log_check_crashed(entry_id=entry.id, error=exc)
                return VersionCheckResult.failed(
                    entry, ErrorKind.UNEXPECTED, f"{type(exc).__name__}: {exc}"
                )

    def _skip_reason(self, entry: CatalogEntry) -> SkipReason | None:
        if not entry.registry.sync:
            return SkipReason.OPTED_OUT
        if not entry.image.strip():
            return SkipReason.NO_IMAGE
        if not self._source.supports(entry.image):
            return SkipReason.FOREIGN_REGISTRY
        return None

    async def _check_with_retry(self, entry: CatalogEntry) -> VersionCheck:
        """Query the registry, retrying once after a transient failure."""
        try:
            return await self._query(entry)
        except RegistryError as exc:
            if not exc.transient:
                raise
            self._event_logger.log_check_retrying(entry_id=entry.id, error=exc)

        await asyncio.sleep(self._config.retry_backoff_s)
        return await self._query(entry)

    async def _query(self, entry: CatalogEntry) -> VersionCheck:
        return await self._source.check_version(
            entry.image,
            entry.version,
            channel=entry.registry.channel,
        )

    @property
    def _source(self) -> VersionSource:
        # The constructor guarantees a client whenever the gate is enabled.
        return typ.cast("VersionSource", self._client)
