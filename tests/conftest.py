"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

from composebuilder.versions.config import VersionSyncConfig
from tests.helpers.fakes import (
    FakeVersionSource,
    InMemoryCatalogStore,
    make_entry,
)

if typ.TYPE_CHECKING:
    from composebuilder.catalog.models import CatalogEntry

_SERVICE_ENV = (
    "COMPOSEBUILDER_REGISTRY_HOST",
    "COMPOSEBUILDER_REGISTRY_USERNAME",
    "COMPOSEBUILDER_REGISTRY_PASSWORD",
    "COMPOSEBUILDER_REGISTRY_PROTOCOL",
    "COMPOSEBUILDER_REGISTRY_TIMEOUT_S",
    "COMPOSEBUILDER_VERSION_SYNC_INTERVAL_S",
    "COMPOSEBUILDER_VERSION_SYNC_CONCURRENCY",
    "COMPOSEBUILDER_VERSION_SYNC_DEADLINE_S",
    "COMPOSEBUILDER_VERSION_SYNC_RETRY_BACKOFF_S",
    "COMPOSEBUILDER_VERSION_SYNC_ON_START",
    "COMPOSEBUILDER_EXCLUDED_TAG_MARKERS",
    "COMPOSEBUILDER_DATA_DIR",
    "COMPOSEBUILDER_CATALOG_SEED",
    "COMPOSEBUILDER_HOST",
    "COMPOSEBUILDER_PORT",
    "COMPOSEBUILDER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's service settings out of every test."""
    for name in _SERVICE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def entries() -> list[CatalogEntry]:
    """Three syncable entries pinned to 1.0.0."""
    return [make_entry("alpha"), make_entry("beta"), make_entry("gamma")]


@pytest.fixture
def store(entries: list[CatalogEntry]) -> InMemoryCatalogStore:
    """Return an in-memory catalog store seeded with ``entries``."""
    return InMemoryCatalogStore(entries)


@pytest.fixture
def source() -> FakeVersionSource:
    """Return a fake registry with no tags for any image."""
    return FakeVersionSource()


@pytest.fixture
def sync_config() -> VersionSyncConfig:
    """Sync settings without back-off so retries finish immediately."""
    return VersionSyncConfig(
        concurrency=2,
        retry_backoff_s=0.0,
        sweep_deadline_s=5.0,
        run_on_start=False,
    )
