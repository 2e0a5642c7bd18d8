"""In-memory collaborators for version synchronisation tests."""

from __future__ import annotations

import asyncio
import typing as typ

from composebuilder.catalog.models import CatalogEntry, RegistrySettings
from composebuilder.catalog.store import CatalogStoreError
from composebuilder.versions.config import ConfigGate, RegistryConfig
from composebuilder.versions.models import VersionCheck

REGISTRY_HOST = "registry.test"

# A scripted outcome: a tag, ``None`` for "no eligible tag", or an exception.
type Outcome = str | None | BaseException


def make_entry(
    entry_id: str,
    *,
    version: str = "1.0.0",
    image: str | None = None,
    sync: bool = True,
    channel: str | None = None,
) -> CatalogEntry:
    """Build a catalog entry hosted on the fake registry by default."""
    return CatalogEntry(
        id=entry_id,
        name=entry_id.replace("-", " ").title(),
        image=f"{REGISTRY_HOST}/team/{entry_id}" if image is None else image,
        version=version,
        registry=RegistrySettings(sync=sync, channel=channel),
    )


def enabled_gate() -> ConfigGate:
    """Return a gate configured for the fake registry."""
    return ConfigGate(RegistryConfig(host=REGISTRY_HOST, username="ci", password="secret"))


def disabled_gate() -> ConfigGate:
    """Return a gate with no registry configured."""
    return ConfigGate(None)


class InMemoryCatalogStore:
    """Catalog store that records every save."""

    def __init__(self, entries: typ.Iterable[CatalogEntry] = ()) -> None:
        self.entries = list(entries)
        self.saves: list[list[CatalogEntry]] = []
        self.load_calls = 0
        self.load_error: CatalogStoreError | None = None
        self.save_error: CatalogStoreError | None = None

    def load(self) -> list[CatalogEntry]:
        self.load_calls += 1
        if self.load_error is not None:
            raise self.load_error
        return list(self.entries)

    def save(self, entries: list[CatalogEntry]) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.saves.append(list(entries))
        self.entries = list(entries)

    def versions(self) -> dict[str, str]:
        return {entry.id: entry.version for entry in self.entries}


class FakeVersionSource:
    """Scripted registry that tracks calls and concurrency.

    ``outcomes`` maps an image reference to one outcome, or to a list of
    outcomes consumed one per call.  Unknown images have no eligible tag.
    """

    def __init__(
        self,
        outcomes: dict[str, Outcome | list[Outcome]] | None = None,
        *,
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ) -> None:
        self._outcomes = dict(outcomes or {})
        self._delay = delay
        self._delays = dict(delays or {})
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.release: asyncio.Event | None = None

    def supports(self, image: str) -> bool:
        return image.startswith(f"{REGISTRY_HOST}/")

    async def check_version(
        self,
        image: str,
        current_version: str,
        *,
        channel: str | None = None,
    ) -> VersionCheck:
        self.calls.append(image)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.release is not None:
                await self.release.wait()
            await asyncio.sleep(self._delays.get(image, self._delay))
            outcome = self._next_outcome(image)
        finally:
            self.in_flight -= 1

        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            return VersionCheck(new_version=None, changed=False)
        return VersionCheck(new_version=outcome, changed=outcome != current_version)

    def _next_outcome(self, image: str) -> Outcome:
        scripted = self._outcomes.get(image)
        if isinstance(scripted, list):
            return scripted.pop(0) if scripted else None
        return scripted


def image_of(entry_id: str) -> str:
    """Return the default image reference for ``entry_id``."""
    return f"{REGISTRY_HOST}/team/{entry_id}"
