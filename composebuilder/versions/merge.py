"""Optimistic write-back of sweep results into the catalog store.

The store only offers whole-collection ``load`` and ``save``.  A sweep works
from a snapshot that may be minutes old by the time it finishes, so the merge
re-reads the catalog immediately before writing and only patches the pinned
version of entries that still exist and still point at the image and channel
that were checked.  The load and save run back to back with
no ``await`` in between, so no other coroutine in this process can interleave
a catalog write.

Writers in other processes can still slip in between the two calls and lose
their update.  The store has no version stamp or compare-and-swap to detect
that; callers needing strict consistency must route every catalog write
through one owner.
"""

from __future__ import annotations

import typing as typ

from composebuilder.catalog.store import CatalogStoreError
from composebuilder.versions.errors import CatalogSaveError
from composebuilder.versions.observability import VersionSyncEventLogger

if typ.TYPE_CHECKING:
    from composebuilder.catalog.models import CatalogEntry
    from composebuilder.catalog.store import CatalogStore
    from composebuilder.versions.models import SweepReport, VersionCheckResult


class MergeCoordinator:
    """Apply changed versions from a sweep report to the catalog store."""

    def __init__(
        self,
        store: CatalogStore,
        *,
        event_logger: VersionSyncEventLogger | None = None,
    ) -> None:
        """Bind the coordinator to the catalog store it writes."""
        self._store = store
        self._event_logger = event_logger or VersionSyncEventLogger()

    def apply_report(self, report: SweepReport) -> int:
        """Write changed versions back and return how many entries were saved.

        Parameters
        ----------
        report
            Sweep results.  Only results with ``changed`` set are applied.

        Returns
        -------
        int
            Number of entries whose pinned version was updated.  Zero means
            no write happened.

        Raises
        ------
        CatalogSaveError
            If the fresh read or the write fails.

        """
        pending = {
            result.entry_id: result
            for result in report.results
            if result.changed and result.new_version
        }
        if not report.any_changed or not pending:
            return 0

        try:
            current = self._store.load()
        except CatalogStoreError as exc:
            raise CatalogSaveError(str(exc)) from exc

        merged, saved_ids, edited_ids = _merge_versions(current, pending)
        if not saved_ids:
            return 0

        try:
            self._store.save(merged)
        except CatalogStoreError as exc:
            raise CatalogSaveError(str(exc)) from exc

        vanished = sorted(set(pending) - {entry.id for entry in current})
        self._event_logger.log_catalog_saved(
            saved_count=len(saved_ids), skipped_ids=vanished, edited_ids=edited_ids
        )
        return len(saved_ids)


def _merge_versions(
    current: list[CatalogEntry], pending: dict[str, VersionCheckResult]
) -> tuple[list[CatalogEntry], list[str], list[str]]:
    """Apply pending versions to ``current``.

    Returns the merged entries, the ids that were updated and the ids left
    alone because their image or channel changed since the check.
    """
    merged: list[CatalogEntry] = []
    saved_ids: list[str] = []
    edited_ids: list[str] = []
    for entry in current:
        result = pending.get(entry.id)
        new_version = result.new_version if result is not None else None
        if result is None or new_version is None or new_version == entry.version:
            merged.append(entry)
            continue
        if (entry.image, entry.registry.channel) != (result.image, result.channel):
            edited_ids.append(entry.id)
            merged.append(entry)
            continue
        merged.append(entry.with_version(new_version))
        saved_ids.append(entry.id)
    return merged, saved_ids, edited_ids
