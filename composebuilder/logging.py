"""femtologging helpers shared by every composebuilder module.

Messages are rendered before they reach femtologging, so call sites use
percent-style templates (``log_info``) or ``key=value`` events
(``log_event``) while the logger only ever sees a finished string.

Example:
>>> from composebuilder.logging import get_logger, log_event, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Catalog saved with %d changes", 3)
>>> log_event(logger, LogLevel.INFO, "versions.sweep.started", entries=7)

"""

from __future__ import annotations

import enum
import functools
import typing as typ

from femtologging import basicConfig, get_logger

_FALLBACK_LEVEL = "INFO"


class LogLevel(enum.StrEnum):
    """Level names accepted by femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return ``(level, invalid)`` for a raw level string.

    Unknown, empty, or missing values fall back to ``INFO`` and set the
    ``invalid`` flag so callers can warn about the bad input.
    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_FALLBACK_LEVEL, True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Install the root femtologging configuration.

    Parameters
    ----------
    level
        Raw level string, typically read from ``COMPOSEBUILDER_LOG_LEVEL``.
    force
        Replace a handler configuration installed earlier in the process.

    Returns
    -------
    tuple[str, bool]
        The level actually applied and whether the input was rejected.

    """
    applied, invalid = normalize_log_level(level)
    basicConfig(level=applied, force=force)
    return (applied, invalid)


class _Logger(typ.Protocol):
    def log(
        self, level: str, message: str, /, *, exc_info: object | None = ...
    ) -> str | None: ...


def _emit(
    level: LogLevel,
    logger: _Logger,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    # Interpolate only when arguments were passed so literal "%" survives.
    message = template % args if args else template
    logger.log(str(level), message, exc_info=exc_info)


log_debug = functools.partial(_emit, LogLevel.DEBUG)
log_info = functools.partial(_emit, LogLevel.INFO)
log_warning = functools.partial(_emit, LogLevel.WARNING)
log_error = functools.partial(_emit, LogLevel.ERROR)


def log_exception(logger: _Logger, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` attached as exc_info."""
    logger.log(str(LogLevel.ERROR), message, exc_info=exc)


def log_event(
    logger: _Logger,
    level: LogLevel,
    event: str,
    /,
    *,
    exc_info: object | None = None,
    **fields: object,
) -> None:
    """Log a structured event as ``[event] key=value ...``.

    Fields keep their keyword order.  Values are rendered with ``str()``, so
    callers format floats and collections before passing them in.

    Parameters
    ----------
    logger
        Destination logger.
    level
        Severity of the record.
    event
        Dotted event identifier, e.g. ``versions.sweep.completed``.
    exc_info
        Exception attached to the record, if any.
    **fields
        Event attributes appended after the identifier.

    """
    rendered = " ".join(f"{key}={value}" for key, value in fields.items())
    message = f"[{event}] {rendered}" if rendered else f"[{event}]"
    logger.log(str(level), message, exc_info=exc_info)


__all__ = [
    "LogLevel",
    "configure_logging",
    "get_logger",
    "log_debug",
    "log_error",
    "log_event",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
