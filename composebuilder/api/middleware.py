"""ASGI lifespan middleware that owns the version scheduler's lifecycle.

Falcon forwards the ASGI ``lifespan.startup`` and ``lifespan.shutdown``
messages to middleware ``process_startup`` and ``process_shutdown`` hooks.
Startup arms the scheduler; shutdown stops it and closes the registry HTTP
client.

Usage
-----
Register the middleware when creating the Falcon app::

    from composebuilder.api.middleware import VersionSyncLifecycle

    app = falcon.asgi.App(
        middleware=[VersionSyncLifecycle(scheduler, registry_client=client)]
    )

"""

from __future__ import annotations

import typing as typ

from composebuilder.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    from composebuilder.versions.client import RegistryClient
    from composebuilder.versions.scheduler import VersionScheduler

__all__ = ["VersionSyncLifecycle"]

logger = get_logger(__name__)


class VersionSyncLifecycle:
    """Falcon middleware binding the scheduler to the ASGI lifespan.

    Parameters
    ----------
    scheduler
        Process-wide scheduler started once per process.
    registry_client
        Registry client whose owned HTTP connections are closed on shutdown.

    """

    def __init__(
        self,
        scheduler: VersionScheduler,
        *,
        registry_client: RegistryClient | None = None,
    ) -> None:
        """Initialize the middleware with the scheduler it manages."""
        self._scheduler = scheduler
        self._registry_client = registry_client

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Arm the periodic timer; repeated startups are harmless."""
        armed = self._scheduler.ensure_started()
        log_info(logger, "Version sync scheduler started (timer_armed=%s)", armed)

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop the scheduler, then release registry connections."""
        try:
            await self._scheduler.stop()
        finally:
            if self._registry_client is not None:
                await self._registry_client.aclose()
