"""Unit tests for composebuilder.api.middleware.VersionSyncLifecycle.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_middleware.py

"""

from __future__ import annotations

from unittest import mock

import pytest

from composebuilder.api.middleware import VersionSyncLifecycle


@pytest.fixture
def scheduler() -> mock.MagicMock:
    """Return a scheduler double with an awaitable ``stop``."""
    double = mock.MagicMock()
    double.ensure_started.return_value = True
    double.stop = mock.AsyncMock()
    return double


@pytest.fixture
def registry_client() -> mock.MagicMock:
    """Return a registry client double with an awaitable ``aclose``."""
    double = mock.MagicMock()
    double.aclose = mock.AsyncMock()
    return double


@pytest.mark.asyncio
class TestLifespan:
    """Startup arms the scheduler; shutdown stops it and closes the client."""

    async def test_startup_starts_scheduler(self, scheduler: mock.MagicMock) -> None:
        """process_startup calls ``ensure_started`` once."""
        middleware = VersionSyncLifecycle(scheduler)

        await middleware.process_startup({}, {})

        scheduler.ensure_started.assert_called_once_with()
        scheduler.stop.assert_not_awaited()

    async def test_shutdown_stops_scheduler_then_closes_client(
        self, scheduler: mock.MagicMock, registry_client: mock.MagicMock
    ) -> None:
        """process_shutdown stops the scheduler before closing the client."""
        order = mock.MagicMock()
        order.attach_mock(scheduler.stop, "stop")
        order.attach_mock(registry_client.aclose, "aclose")
        middleware = VersionSyncLifecycle(scheduler, registry_client=registry_client)

        await middleware.process_shutdown({}, {})

        assert [name for name, _args, _kwargs in order.mock_calls] == [
            "stop",
            "aclose",
        ]

    async def test_client_closed_when_stop_fails(
        self, scheduler: mock.MagicMock, registry_client: mock.MagicMock
    ) -> None:
        """Registry connections are released even if stopping raises."""
        scheduler.stop.side_effect = RuntimeError("boom")
        middleware = VersionSyncLifecycle(scheduler, registry_client=registry_client)

        with pytest.raises(RuntimeError, match="boom"):
            await middleware.process_shutdown({}, {})

        registry_client.aclose.assert_awaited_once_with()

    async def test_shutdown_without_client(self, scheduler: mock.MagicMock) -> None:
        """Disabled deployments have no client to close."""
        await VersionSyncLifecycle(scheduler).process_shutdown({}, {})

        scheduler.stop.assert_awaited_once_with()
