"""Configuration for registry version synchronisation.

Usage
-----
Load everything from the environment at process start:

>>> gate = ConfigGate.from_env()
>>> gate.is_enabled()
False
>>> config = VersionSyncConfig.from_env()
>>> config.tick_interval_s
86400.0

"""

from __future__ import annotations

import dataclasses as dc
import os

from composebuilder.versions.errors import VersionSyncConfigError
from composebuilder.versions.tags import DEFAULT_EXCLUDED_MARKERS

# Default configuration values - single source of truth
_DEFAULT_PROTOCOL = "https"
_DEFAULT_REQUEST_TIMEOUT_S = 10.0
_DEFAULT_TICK_INTERVAL_S = 24 * 60 * 60.0
_DEFAULT_CONCURRENCY = 4
_DEFAULT_SWEEP_DEADLINE_S = 300.0
_DEFAULT_RETRY_BACKOFF_S = 0.5

_TRUE_FLAGS = frozenset({"1", "true", "yes", "on"})
_FALSE_FLAGS = frozenset({"0", "false", "no", "off"})


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def _parse_positive_float(
    env_var: str, default: float, *, allow_zero: bool = False
) -> float:
    raw = _env(env_var)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise VersionSyncConfigError.invalid_number(env_var, raw) from exc
    if value < 0 or (value == 0 and not allow_zero):
        raise VersionSyncConfigError.invalid_number(env_var, raw)
    return value


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = _env(env_var)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise VersionSyncConfigError.invalid_number(env_var, raw) from exc
    if value < 1:
        raise VersionSyncConfigError.invalid_number(env_var, raw)
    return value


def _parse_flag(env_var: str, *, default: bool) -> bool:
    raw = _env(env_var).lower()
    if not raw:
        return default
    if raw in _TRUE_FLAGS:
        return True
    if raw in _FALSE_FLAGS:
        return False
    raise VersionSyncConfigError.invalid_flag(env_var, raw)


def _parse_markers(env_var: str) -> tuple[str, ...]:
    raw = os.environ.get(env_var)
    if raw is None:
        return DEFAULT_EXCLUDED_MARKERS
    return tuple(
        marker.strip().lower() for marker in raw.split(",") if marker.strip()
    )


@dc.dataclass(frozen=True, slots=True)
class RegistryConfig:
    """Connection settings for the upstream container registry.

    Attributes
    ----------
    host
        Registry host, optionally with a scheme (``https://nexus.example``).
    username
        Basic-auth user name.
    password
        Basic-auth password or token.
    protocol
        Scheme used when ``host`` carries none.
    timeout_s
        Upper bound for one image's complete tag query, in seconds.

    """

    host: str
    username: str
    password: str
    protocol: str = _DEFAULT_PROTOCOL
    timeout_s: float = _DEFAULT_REQUEST_TIMEOUT_S

    @property
    def base_url(self) -> str:
        """Return the registry URL including its scheme."""
        host = self.host.strip().rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"{self.protocol}://{host}"

    @property
    def normalized_host(self) -> str:
        """Return the host without scheme or trailing slashes."""
        return normalize_host(self.host)

    @classmethod
    def from_env(cls) -> RegistryConfig | None:
        """Build configuration from environment variables.

        Reads the following environment variables:

        - ``COMPOSEBUILDER_REGISTRY_HOST``: registry host (required)
        - ``COMPOSEBUILDER_REGISTRY_USERNAME``: user name (required)
        - ``COMPOSEBUILDER_REGISTRY_PASSWORD``: password (required)
        - ``COMPOSEBUILDER_REGISTRY_PROTOCOL``: scheme, default ``https``
        - ``COMPOSEBUILDER_REGISTRY_TIMEOUT_S``: per-image timeout, default 10

        Returns
        -------
        RegistryConfig | None
            ``None`` when any required variable is missing or blank.

        """
        host = _env("COMPOSEBUILDER_REGISTRY_HOST")
        username = _env("COMPOSEBUILDER_REGISTRY_USERNAME")
        password = _env("COMPOSEBUILDER_REGISTRY_PASSWORD")
        if not (host and username and password):
            return None

        return cls(
            host=host,
            username=username,
            password=password,
            protocol=_env("COMPOSEBUILDER_REGISTRY_PROTOCOL") or _DEFAULT_PROTOCOL,
            timeout_s=_parse_positive_float(
                "COMPOSEBUILDER_REGISTRY_TIMEOUT_S", _DEFAULT_REQUEST_TIMEOUT_S
            ),
        )


def normalize_host(host: str) -> str:
    """Strip the scheme and trailing slashes from a registry host."""
    trimmed = host.strip()
    for scheme in ("https://", "http://"):
        if trimmed.startswith(scheme):
            trimmed = trimmed[len(scheme) :]
            break
    return trimmed.rstrip("/").lower()


class ConfigGate:
    """Report whether registry synchronisation is enabled.

    The gate is evaluated once from already-loaded configuration; asking it
    never performs I/O.
    """

    def __init__(self, registry: RegistryConfig | None) -> None:
        """Wrap the registry configuration, or ``None`` when unconfigured."""
        self._registry = registry

    @classmethod
    def from_env(cls) -> ConfigGate:
        """Build the gate from ``COMPOSEBUILDER_REGISTRY_*`` variables."""
        return cls(RegistryConfig.from_env())

    @property
    def registry(self) -> RegistryConfig | None:
        """Return the registry configuration when synchronisation is enabled."""
        return self._registry

    def is_enabled(self) -> bool:
        """Return ``True`` when registry host and credentials are configured."""
        return self._registry is not None


@dc.dataclass(frozen=True, slots=True)
class VersionSyncConfig:
    """Scheduling and fan-out settings for version sweeps.

    Attributes
    ----------
    tick_interval_s
        Seconds between periodic sweeps.  Default is one day.
    concurrency
        Maximum number of registry checks in flight during one sweep.
    sweep_deadline_s
        Upper bound for a whole sweep; unfinished checks are reported as
        failures once it passes.
    retry_backoff_s
        Pause before the single retry of a check that hit a network failure.
    run_on_start
        Whether the first periodic sweep runs as soon as the timer is armed.
    excluded_tag_markers
        Lowercase tag tokens (matched as prefixes) that mark non-release
        channels.

    """

    tick_interval_s: float = _DEFAULT_TICK_INTERVAL_S
    concurrency: int = _DEFAULT_CONCURRENCY
    sweep_deadline_s: float | None = _DEFAULT_SWEEP_DEADLINE_S
    retry_backoff_s: float = _DEFAULT_RETRY_BACKOFF_S
    run_on_start: bool = True
    excluded_tag_markers: tuple[str, ...] = DEFAULT_EXCLUDED_MARKERS

    @classmethod
    def from_env(cls) -> VersionSyncConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``COMPOSEBUILDER_VERSION_SYNC_INTERVAL_S``
        - ``COMPOSEBUILDER_VERSION_SYNC_CONCURRENCY``
        - ``COMPOSEBUILDER_VERSION_SYNC_DEADLINE_S``
        - ``COMPOSEBUILDER_VERSION_SYNC_RETRY_BACKOFF_S`` (zero allowed)
        - ``COMPOSEBUILDER_VERSION_SYNC_ON_START``
        - ``COMPOSEBUILDER_EXCLUDED_TAG_MARKERS`` (comma separated; an empty
          value disables marker exclusion)

        Raises
        ------
        VersionSyncConfigError
            If a numeric or boolean variable cannot be parsed.

        """
        return cls(
            tick_interval_s=_parse_positive_float(
                "COMPOSEBUILDER_VERSION_SYNC_INTERVAL_S", _DEFAULT_TICK_INTERVAL_S
            ),
            concurrency=_parse_positive_int(
                "COMPOSEBUILDER_VERSION_SYNC_CONCURRENCY", _DEFAULT_CONCURRENCY
            ),
            sweep_deadline_s=_parse_positive_float(
                "COMPOSEBUILDER_VERSION_SYNC_DEADLINE_S", _DEFAULT_SWEEP_DEADLINE_S
            ),
            retry_backoff_s=_parse_positive_float(
                "COMPOSEBUILDER_VERSION_SYNC_RETRY_BACKOFF_S",
                _DEFAULT_RETRY_BACKOFF_S,
                allow_zero=True,
            ),
            run_on_start=_parse_flag(
                "COMPOSEBUILDER_VERSION_SYNC_ON_START", default=True
            ),
            excluded_tag_markers=_parse_markers("COMPOSEBUILDER_EXCLUDED_TAG_MARKERS"),
        )
