"""Process entrypoint for the composebuilder service.

Granian imports ``composebuilder.runtime:create_app`` as an application
factory; the ``composebuilder`` console script calls :func:`main`.  Process
settings are read once into :class:`RuntimeSettings`:

- ``COMPOSEBUILDER_HOST`` / ``COMPOSEBUILDER_PORT``: listen address, default
  ``0.0.0.0:8080``
- ``COMPOSEBUILDER_LOG_LEVEL``: femtologging level, default ``INFO``
- ``COMPOSEBUILDER_DATA_DIR``: directory holding ``catalog.json``, default
  ``./data``
- ``COMPOSEBUILDER_CATALOG_SEED``: YAML or JSON catalog served until the
  first catalog is stored

Registry and scheduling variables are documented in
:mod:`composebuilder.versions.config`.
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ
from pathlib import Path

from composebuilder.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from composebuilder.startup import check_data_dir

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["RuntimeSettings", "create_app", "main"]

logger = get_logger(__name__)

_PORT_RANGE = range(1, 65536)
_DEFAULT_HOST = "0.0.0.0"  # noqa: S104 - containers bind every interface
_DEFAULT_PORT = "8080"
_DEFAULT_LOG_LEVEL = "INFO"
_DEFAULT_DATA_DIR = "./data"


def _env(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _port_from(raw: str) -> int:
    """Return ``raw`` as a TCP port or exit with status 1.

    Raises
    ------
    SystemExit
        When ``raw`` is not an integer between 1 and 65535.

    """
    try:
        port = int(raw)
    except ValueError as exc:
        log_error(logger, "COMPOSEBUILDER_PORT must be 1-65535, got %r", raw)
        raise SystemExit(1) from exc
    if port not in _PORT_RANGE:
        log_error(logger, "COMPOSEBUILDER_PORT must be 1-65535, got %r", raw)
        raise SystemExit(1)
    return port


@dc.dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Process-level settings read from the environment."""

    host: str
    port: int
    log_level: str
    data_dir: Path
    seed_path: Path | None = None

    @classmethod
    def from_env(cls) -> RuntimeSettings:
        """Read settings, exiting on an unusable ``COMPOSEBUILDER_PORT``."""
        seed = os.environ.get("COMPOSEBUILDER_CATALOG_SEED", "").strip()
        return cls(
            host=_env("COMPOSEBUILDER_HOST", _DEFAULT_HOST),
            port=_port_from(_env("COMPOSEBUILDER_PORT", _DEFAULT_PORT)),
            log_level=_env("COMPOSEBUILDER_LOG_LEVEL", _DEFAULT_LOG_LEVEL),
            data_dir=Path(_env("COMPOSEBUILDER_DATA_DIR", _DEFAULT_DATA_DIR)),
            seed_path=Path(seed) if seed else None,
        )


def create_app() -> falcon.asgi.App:
    """Build the application Granian serves.

    A data directory that cannot be written is logged and reported through
    ``/ready``; the process still starts so liveness probes keep passing.
    """
    from composebuilder.api.app import create_app as build_api
    from composebuilder.api.factory import build_app_dependencies

    settings = RuntimeSettings.from_env()
    deps = build_app_dependencies(
        settings.data_dir,
        seed_path=settings.seed_path,
        startup=check_data_dir(settings.data_dir),
    )
    log_info(
        logger,
        "Registry version sync is %s; catalog lives in %s",
        "on" if deps.gate.is_enabled() else "off",
        settings.data_dir,
    )
    return build_api(deps)


def main() -> None:
    """Serve the application with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = RuntimeSettings.from_env()
    level, rejected = configure_logging(settings.log_level)
    if rejected:
        log_warning(
            logger,
            "Ignoring COMPOSEBUILDER_LOG_LEVEL=%r; using %s",
            settings.log_level,
            level,
        )

    log_info(logger, "Listening on %s:%d", settings.host, settings.port)
    Granian(
        "composebuilder.runtime:create_app",
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
    ).serve()


if __name__ == "__main__":
    main()
