"""Capture femtologging output so tests can assert on emitted events.

femtologging delivers records on its own worker thread, so assertions wait on
a condition variable instead of reading the record list straight away.
"""

from __future__ import annotations

import contextlib
import threading
import typing as typ

from femtologging import get_logger

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class FemtoLogRecord(typ.NamedTuple):
    """One captured record."""

    logger: str
    level: str
    message: str
    exc_info: object | None = None


class FemtoLogCapture:
    """femtologging handler that keeps every record it receives."""

    def __init__(self) -> None:
        self.records: list[FemtoLogRecord] = []
        self._arrived = threading.Condition()

    # femtologging calls ``handle`` for plain records and ``handle_record``
    # when the handler accepts structured payloads.
    def handle(self, logger: str, level: str, message: str) -> None:
        self._keep(FemtoLogRecord(str(logger), str(level), message))

    def handle_record(self, record: cabc.Mapping[str, object]) -> None:
        self._keep(
            FemtoLogRecord(
                str(record.get("logger", "")),
                str(record.get("level", "")),
                str(record.get("message", "")),
                record.get("exc_info"),
            )
        )

    def _keep(self, record: FemtoLogRecord) -> None:
        with self._arrived:
            self.records.append(record)
            self._arrived.notify_all()

    def wait_for_count(self, count: int, timeout: float = 1.0) -> None:
        """Block until ``count`` records arrived, failing after ``timeout``."""
        with self._arrived:
            arrived = self._arrived.wait_for(
                lambda: len(self.records) >= count, timeout=timeout
            )
        assert arrived, f"expected {count} log records, got {len(self.records)}"

    def matching(self, fragment: str) -> list[FemtoLogRecord]:
        """Return records whose message contains ``fragment``."""
        with self._arrived:
            return [record for record in self.records if fragment in record.message]

    def events(self, event: str) -> list[FemtoLogRecord]:
        """Return records emitted by ``log_event`` for ``event``."""
        return self.matching(f"[{event}]")


@contextlib.contextmanager
def capture_femto_logs(
    logger_name: str, *, level: str = "TRACE"
) -> typ.Iterator[FemtoLogCapture]:
    """Route ``logger_name`` to a fresh capture for the duration of the block."""
    logger = get_logger(logger_name)
    saved = (logger.level, logger.propagate)
    capture = FemtoLogCapture()

    logger.set_level(level)
    logger.set_propagate(False)
    logger.add_handler(capture)
    try:
        yield capture
    finally:
        logger.remove_handler(capture)
        logger.set_level(saved[0])
        logger.set_propagate(saved[1])
