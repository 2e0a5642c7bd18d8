"""Application factory for the composebuilder Falcon ASGI application.

This module provides ``create_app()`` which builds the Falcon ASGI app with
health endpoints and, when version synchronisation dependencies are supplied,
the refresh, status and scheduler endpoints plus the lifespan middleware that
starts and stops the scheduler.

Usage
-----
Create a health-only app::

    app = create_app()

Create a full app::

    from composebuilder.api.app import AppDependencies, create_app

    deps = AppDependencies(gate=gate, scheduler=scheduler)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from composebuilder.api.errors import register_error_handlers
from composebuilder.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from composebuilder.startup import StartupCheckResult
    from composebuilder.versions.client import RegistryClient
    from composebuilder.versions.config import ConfigGate
    from composebuilder.versions.scheduler import VersionScheduler

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    gate
        Reports whether registry synchronisation is enabled.
    scheduler
        Process-wide scheduler behind the refresh endpoints.
    registry_client
        Registry client closed on lifespan shutdown, if one was built.
    startup
        Start-up check result reported by ``/ready``.

    """

    gate: ConfigGate
    scheduler: VersionScheduler
    registry_client: RegistryClient | None = None
    startup: StartupCheckResult | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies.  When ``None``, only ``/health``
        and ``/ready`` are registered.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    if dependencies is not None:
        from composebuilder.api.middleware import VersionSyncLifecycle

        middleware.append(
            VersionSyncLifecycle(
                dependencies.scheduler,
                registry_client=dependencies.registry_client,
            )
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    startup = dependencies.startup if dependencies is not None else None
    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(startup))

    if dependencies is not None:
        from composebuilder.api.versions.resources import (
            CatalogRefreshResource,
            EntryRefreshResource,
            SchedulerStateResource,
            SyncStatusResource,
        )

        scheduler = dependencies.scheduler
        # Static segments take precedence over the {entry_id} field.
        app.add_route(
            "/templates/versions/refresh", CatalogRefreshResource(scheduler)
        )
        app.add_route(
            "/templates/{entry_id}/versions/refresh", EntryRefreshResource(scheduler)
        )
        app.add_route(
            "/templates/versions/status", SyncStatusResource(dependencies.gate)
        )
        app.add_route(
            "/templates/versions/scheduler", SchedulerStateResource(scheduler)
        )

    register_error_handlers(app)

    return app
