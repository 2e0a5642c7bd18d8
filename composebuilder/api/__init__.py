"""composebuilder HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application that exposes manual version refreshes, the sync status
and health probes.

Usage
-----
Create and run the application::

    from composebuilder.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # version sync endpoints and lifespan hooks

"""

from composebuilder.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
