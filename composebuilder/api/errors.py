"""Falcon error handlers for version synchronisation failures.

Every handler answers with ``{"title": ..., "description": str(exc)}``.
Client-side conditions (unknown entry, sweep already running, shutdown) are
returned quietly; failures that lose or block a catalog write are also logged
with their traceback.

Usage
-----
Register every handler on the Falcon app::

    from composebuilder.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from composebuilder.catalog.store import CatalogStoreError
from composebuilder.logging import get_logger, log_exception
from composebuilder.versions.errors import (
    CatalogEntryNotFoundError,
    CatalogSaveError,
    SchedulerStoppedError,
    SweepInProgressError,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import falcon.asgi
    from falcon.asgi import Request, Response

    ErrorHandler = cabc.Callable[
        [Request, Response, Exception, dict[str, typ.Any]],
        cabc.Awaitable[None],
    ]

__all__ = [
    "handle_catalog_save_failed",
    "handle_catalog_unavailable",
    "handle_entry_not_found",
    "handle_scheduler_stopped",
    "handle_sweep_in_progress",
    "register_error_handlers",
]

logger = get_logger(__name__)


def _json_error(
    status: str, title: str, *, log_message: str | None = None
) -> ErrorHandler:
    """Build a handler that renders ``exc`` as a JSON error body.

    Parameters
    ----------
    status
        Falcon status line, e.g. ``falcon.HTTP_409``.
    title
        Short, stable summary placed in the ``title`` field.
    log_message
        When set, the exception is logged at ERROR under this message.

    """

    async def handle(
        _req: Request,
        resp: Response,
        ex: Exception,
        _params: dict[str, typ.Any],
    ) -> None:
        if log_message is not None:
            log_exception(logger, log_message, ex)
        resp.status = status
        resp.media = {"title": title, "description": str(ex)}

    return handle


handle_entry_not_found = _json_error(falcon.HTTP_404, "Catalog entry not found")
handle_sweep_in_progress = _json_error(falcon.HTTP_409, "Sweep in progress")
handle_scheduler_stopped = _json_error(falcon.HTTP_503, "Version sync stopped")
handle_catalog_save_failed = _json_error(
    falcon.HTTP_500,
    "Catalog save failed",
    log_message="Manual version refresh could not save the catalog",
)
handle_catalog_unavailable = _json_error(
    falcon.HTTP_500,
    "Catalog unavailable",
    log_message="Catalog could not be loaded for a manual refresh",
)

_HANDLERS: tuple[tuple[type[Exception], ErrorHandler], ...] = (
    (CatalogEntryNotFoundError, handle_entry_not_found),
    (SweepInProgressError, handle_sweep_in_progress),
    (SchedulerStoppedError, handle_scheduler_stopped),
    (CatalogSaveError, handle_catalog_save_failed),
    (CatalogStoreError, handle_catalog_unavailable),
)


def register_error_handlers(app: falcon.asgi.App) -> None:
    """Install every version synchronisation error handler on ``app``."""
    for exception, handler in _HANDLERS:
        app.add_error_handler(exception, handler)
