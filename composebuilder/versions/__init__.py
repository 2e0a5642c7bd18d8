"""Registry version synchronisation for catalog entries.

The package is layered leaves first:

* **Client & policy** - :class:`RegistryClient` lists tags from a Docker
  Registry v2 endpoint and :class:`TagPolicy` picks the newest eligible one.
* **Refresher** - :class:`BatchRefresher` fans checks out over a catalog
  snapshot with a concurrency ceiling and per-entry failure isolation.
* **Merge** - :class:`MergeCoordinator` writes changed versions back with a
  fresh read immediately before a single save.
* **Scheduler** - :class:`VersionScheduler` runs periodic and manual sweeps,
  never more than one at a time.

Quick example
-------------

    >>> from composebuilder.versions import ConfigGate, VersionSyncConfig
    >>> gate = ConfigGate.from_env()
    >>> gate.is_enabled()
    False
"""

from __future__ import annotations

from .client import (
    ImageReference,
    RegistryClient,
    VersionSource,
    parse_image_reference,
)
from .config import ConfigGate, RegistryConfig, VersionSyncConfig
from .errors import (
    CatalogEntryNotFoundError,
    CatalogSaveError,
    ErrorKind,
    ImageNotFoundError,
    MalformedRegistryResponseError,
    RegistryError,
    RegistryHTTPError,
    RegistryNetworkError,
    SchedulerStoppedError,
    SweepInProgressError,
    VersionSyncConfigError,
    VersionSyncError,
)
from .merge import MergeCoordinator
from .models import (
    CheckError,
    SkipReason,
    SweepReport,
    SyncOutcome,
    VersionCheck,
    VersionCheckResult,
)
from .observability import SweepTrigger, VersionSyncEventLogger, VersionSyncEventType
from .refresher import BatchRefresher
from .scheduler import (
    SchedulerDependencies,
    SchedulerState,
    SchedulerStatus,
    VersionScheduler,
)
from .tags import DEFAULT_EXCLUDED_MARKERS, TagPolicy

__all__ = [
    "DEFAULT_EXCLUDED_MARKERS",
    "BatchRefresher",
    "CatalogEntryNotFoundError",
    "CatalogSaveError",
    "CheckError",
    "ConfigGate",
    "ErrorKind",
    "ImageNotFoundError",
    "ImageReference",
    "MalformedRegistryResponseError",
    "MergeCoordinator",
    "RegistryClient",
    "RegistryConfig",
    "RegistryError",
    "RegistryHTTPError",
    "RegistryNetworkError",
    "SchedulerDependencies",
    "SchedulerState",
    "SchedulerStatus",
    "SchedulerStoppedError",
    "SkipReason",
    "SweepInProgressError",
    "SweepReport",
    "SweepTrigger",
    "SyncOutcome",
    "TagPolicy",
    "VersionCheck",
    "VersionCheckResult",
    "VersionScheduler",
    "VersionSource",
    "VersionSyncConfig",
    "VersionSyncConfigError",
    "VersionSyncError",
    "VersionSyncEventLogger",
    "VersionSyncEventType",
    "parse_image_reference",
]
