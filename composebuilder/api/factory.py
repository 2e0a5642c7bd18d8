"""Factory for wiring version synchronisation from environment configuration.

``build_app_dependencies()`` assembles the gate, catalog store, registry
client, refresher, merge coordinator and scheduler for one process.  Nothing
here touches the network or starts tasks; that happens on lifespan startup.

Usage
-----
Build the dependencies for the API layer::

    from composebuilder.api.factory import build_app_dependencies

    deps = build_app_dependencies(Path("data"))
    app = create_app(deps)

"""

from __future__ import annotations

import functools
import typing as typ

from composebuilder.api.app import AppDependencies
from composebuilder.catalog.loader import load_catalog
from composebuilder.catalog.store import JsonCatalogStore
from composebuilder.versions.client import RegistryClient
from composebuilder.versions.config import ConfigGate, VersionSyncConfig
from composebuilder.versions.merge import MergeCoordinator
from composebuilder.versions.observability import VersionSyncEventLogger
from composebuilder.versions.refresher import BatchRefresher
from composebuilder.versions.scheduler import SchedulerDependencies, VersionScheduler
from composebuilder.versions.tags import TagPolicy

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from composebuilder.catalog.models import CatalogEntry
    from composebuilder.startup import StartupCheckResult

__all__ = ["CATALOG_FILENAME", "build_app_dependencies"]

CATALOG_FILENAME = "catalog.json"


def build_app_dependencies(
    data_dir: Path,
    *,
    seed_path: Path | None = None,
    startup: StartupCheckResult | None = None,
) -> AppDependencies:
    """Build ``AppDependencies`` from the environment.

    Reads ``COMPOSEBUILDER_REGISTRY_*`` for the gate and registry client and
    ``COMPOSEBUILDER_VERSION_SYNC_*`` for scheduling.  The registry client is
    only created when synchronisation is enabled.

    Parameters
    ----------
    data_dir
        Directory holding ``catalog.json``.
    seed_path
        Optional YAML or JSON catalog used while no catalog is stored.  It
        is validated here so a broken seed fails at start-up.
    startup
        Start-up check result to expose through ``/ready``.

    Returns
    -------
    AppDependencies
        Fully wired dependencies for :func:`composebuilder.api.app.create_app`.

    Raises
    ------
    VersionSyncConfigError
        If a scheduling variable is malformed.
    CatalogValidationError
        If ``seed_path`` does not hold a valid catalog.

    """
    gate = ConfigGate.from_env()
    config = VersionSyncConfig.from_env()

    seed: cabc.Callable[[], list[CatalogEntry]] | None = None
    if seed_path is not None:
        seed = functools.partial(list, load_catalog(seed_path))

    store = JsonCatalogStore(data_dir / CATALOG_FILENAME, seed=seed)

    client: RegistryClient | None = None
    if gate.registry is not None:
        client = RegistryClient(
            gate.registry,
            policy=TagPolicy(excluded_markers=config.excluded_tag_markers),
        )

    event_logger = VersionSyncEventLogger()
    refresher = BatchRefresher(gate, client, config, event_logger=event_logger)
    scheduler = VersionScheduler(
        SchedulerDependencies(
            gate=gate,
            store=store,
            refresher=refresher,
            merger=MergeCoordinator(store, event_logger=event_logger),
        ),
        config,
        event_logger=event_logger,
    )
    return AppDependencies(
        gate=gate,
        scheduler=scheduler,
        registry_client=client,
        startup=startup,
    )
