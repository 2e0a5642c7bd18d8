"""Start-up checks run once when the application is created."""

from __future__ import annotations

import dataclasses as dc
import tempfile
from pathlib import Path

from composebuilder.logging import get_logger, log_error

__all__ = ["StartupCheckResult", "check_data_dir"]

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class StartupCheckResult:
    """Outcome of probing the data directory.

    Attributes
    ----------
    data_dir
        Directory that holds ``catalog.json``.
    writable
        Whether a probe file could be created there.
    error
        Reason the probe failed, if it did.

    """

    data_dir: Path
    writable: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return whether every start-up check passed."""
        return self.writable


def check_data_dir(data_dir: Path | str) -> StartupCheckResult:
    """Create ``data_dir`` if needed and confirm files can be written to it.

    A failure is logged once and returned rather than raised so the process
    can still answer liveness probes while reporting itself as not ready.
    """
    path = Path(data_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, prefix=".write-probe-"):
            pass
    except OSError as exc:
        log_error(
            logger,
            "Startup check failed: data dir not writable (%s): %s",
            path,
            exc,
        )
        return StartupCheckResult(data_dir=path, writable=False, error=str(exc))
    return StartupCheckResult(data_dir=path, writable=True)
