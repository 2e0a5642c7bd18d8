"""Health probe resources for liveness and readiness checks.

Liveness is unconditional.  Readiness reflects the start-up probe of the data
directory: a service that cannot write ``catalog.json`` should not receive
refresh traffic.

Usage
-----
Register health endpoints on the Falcon app::

    from composebuilder.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(startup=check_data_dir(data_dir)))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from composebuilder.startup import StartupCheckResult

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Responds with ``{"status": "ready"}`` and HTTP 200 when no start-up check
    was recorded or it passed; otherwise HTTP 503 with the failing data
    directory and reason.

    Parameters
    ----------
    startup
        Result of :func:`composebuilder.startup.check_data_dir`.

    """

    def __init__(self, startup: StartupCheckResult | None = None) -> None:
        """Capture the start-up check result reported by this probe."""
        self._startup = startup

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        startup = self._startup
        if startup is None or startup.ok:
            resp.media = {"status": "ready"}
            resp.status = HTTPStatus.OK
            return

        resp.media = {
            "status": "not_ready",
            "data_dir": str(startup.data_dir),
            "data_dir_writable": startup.writable,
            "error": startup.error,
        }
        resp.status = HTTPStatus.SERVICE_UNAVAILABLE
