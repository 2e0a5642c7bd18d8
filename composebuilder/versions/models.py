"""Value objects produced by version checks and sweeps."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

if typ.TYPE_CHECKING:
    from composebuilder.catalog.models import CatalogEntry
    from composebuilder.versions.errors import ErrorKind


class SkipReason(enum.StrEnum):
    """Why an entry was not checked against the registry."""

    DISABLED = "disabled"
    OPTED_OUT = "opted_out"
    NO_IMAGE = "no_image"
    FOREIGN_REGISTRY = "foreign_registry"


@dataclasses.dataclass(frozen=True, slots=True)
class VersionCheck:
    """Outcome of one successful registry query."""

    new_version: str | None
    changed: bool


@dataclasses.dataclass(frozen=True, slots=True)
class CheckError:
    """Failure recorded against a single catalog entry."""

    kind: ErrorKind
    message: str


@dataclasses.dataclass(frozen=True, slots=True)
class VersionCheckResult:
    """Result of checking one catalog entry during a sweep.

    ``new_version`` is only set when ``changed`` is true.  A result carries
    at most one of ``error`` and ``skipped``.  ``image`` and ``channel`` record
    what was checked, so a later write can tell whether the entry has since
    been pointed elsewhere.
    """

    entry_id: str
    previous_version: str
    changed: bool = False
    new_version: str | None = None
    error: CheckError | None = None
    skipped: SkipReason | None = None
    image: str = ""
    channel: str | None = None

    @classmethod
    def from_check(
        cls, entry: CatalogEntry, check: VersionCheck
    ) -> VersionCheckResult:
        """Build a result from a completed registry query."""
        return cls(
            entry_id=entry.id,
            previous_version=entry.version,
            changed=check.changed,
            new_version=check.new_version if check.changed else None,
            image=entry.image,
            channel=entry.registry.channel,
        )

    @classmethod
    def failed(
        cls, entry: CatalogEntry, kind: ErrorKind, message: str
    ) -> VersionCheckResult:
        """Build a result for a check that did not produce a version."""
        return cls(
            entry_id=entry.id,
            previous_version=entry.version,
            error=CheckError(kind=kind, message=message),
            image=entry.image,
            channel=entry.registry.channel,
        )

    @classmethod
    def skip(cls, entry: CatalogEntry, reason: SkipReason) -> VersionCheckResult:
        """Build a result for an entry that was not checked."""
        return cls(
            entry_id=entry.id,
            previous_version=entry.version,
            skipped=reason,
            image=entry.image,
            channel=entry.registry.channel,
        )

    @property
    def succeeded(self) -> bool:
        """Return whether the registry was queried without error."""
        return self.error is None and self.skipped is None


@dataclasses.dataclass(frozen=True, slots=True)
class SweepReport:
    """Ordered results of one sweep, one per input entry."""

    results: tuple[VersionCheckResult, ...] = ()
    enabled: bool = True

    @classmethod
    def disabled(cls) -> SweepReport:
        """Return the empty report used when synchronisation is disabled."""
        return cls(results=(), enabled=False)

    @property
    def any_changed(self) -> bool:
        """Return whether at least one entry has a new version."""
        return any(result.changed for result in self.results)

    @property
    def changed_count(self) -> int:
        """Number of entries with a new version."""
        return sum(1 for result in self.results if result.changed)

    @property
    def failed_count(self) -> int:
        """Number of entries whose check failed."""
        return sum(1 for result in self.results if result.error is not None)

    @property
    def skipped_count(self) -> int:
        """Number of entries that were not checked."""
        return sum(1 for result in self.results if result.skipped is not None)


@dataclasses.dataclass(frozen=True, slots=True)
class SyncOutcome:
    """What a refresh trigger reports back to its caller."""

    enabled: bool
    report: SweepReport
    saved_count: int = 0

    @classmethod
    def disabled(cls) -> SyncOutcome:
        """Return the outcome of a trigger while synchronisation is disabled."""
        return cls(enabled=False, report=SweepReport.disabled())

    @property
    def updated(self) -> bool:
        """Return whether any entry was written back to the catalog."""
        return self.saved_count > 0
