"""Whole-collection catalog persistence.

The synchronisation engine only needs two primitives from storage: load the
full ordered list of entries and replace it with a new list.  There is no
partial update and no compare-and-swap, so callers that read, modify and
write must keep that window short themselves (see
:class:`composebuilder.versions.merge.MergeCoordinator`).
"""

from __future__ import annotations

import os
import tempfile
import typing as typ
from pathlib import Path

import msgspec

from .loader import decode_catalog_json, default_catalog
from .validation import CatalogValidationError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import CatalogEntry


class CatalogStoreError(RuntimeError):
    """Raised when the catalog cannot be read from or written to storage."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialise with a message and the path involved, if any."""
        self.path = path
        super().__init__(message)

    @classmethod
    def unreadable(cls, path: Path, reason: object) -> CatalogStoreError:
        """Return an error for a catalog file that cannot be read or parsed."""
        return cls(f"catalog {path} could not be loaded: {reason}", path=path)

    @classmethod
    def unwritable(cls, path: Path, reason: object) -> CatalogStoreError:
        """Return an error for a catalog file that cannot be written."""
        return cls(f"catalog {path} could not be saved: {reason}", path=path)


class CatalogStore(typ.Protocol):
    """Load and save the full ordered list of catalog entries."""

    def load(self) -> list[CatalogEntry]:
        """Return every entry currently stored, in catalog order."""
        ...

    def save(self, entries: list[CatalogEntry]) -> None:
        """Replace the stored catalog with ``entries``."""
        ...


class JsonCatalogStore:
    """Catalog persisted as a single JSON document on the local filesystem.

    When the file does not exist yet, or holds an empty list, ``load`` returns
    the seed catalog instead.  Writes go through a temporary file in the same
    directory followed by :func:`os.replace`, so readers never observe a
    half-written document.

    Parameters
    ----------
    path
        Location of ``catalog.json``.
    seed
        Callable returning the fallback catalog.  Defaults to the catalog
        bundled with the package.

    """

    def __init__(
        self,
        path: Path | str,
        *,
        seed: cabc.Callable[[], list[CatalogEntry]] | None = None,
    ) -> None:
        """Bind the store to ``path`` with an optional seed provider."""
        self.path = Path(path)
        self._seed = seed or default_catalog

    def load(self) -> list[CatalogEntry]:
        """Return the stored entries, or the seed catalog when none are stored.

        Raises
        ------
        CatalogStoreError
            If the file exists but cannot be read or does not hold a valid
            catalog.

        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return list(self._seed())
        except OSError as exc:
            raise CatalogStoreError.unreadable(self.path, exc) from exc

        try:
            entries = decode_catalog_json(raw)
        except CatalogValidationError as exc:
            raise CatalogStoreError.unreadable(self.path, exc) from exc

        return entries or list(self._seed())

    def save(self, entries: list[CatalogEntry]) -> None:
        """Atomically replace the catalog file with ``entries``.

        Raises
        ------
        CatalogStoreError
            If the directory cannot be created or the file cannot be written.

        """
        payload = msgspec.json.format(msgspec.json.encode(entries), indent=2)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise CatalogStoreError.unwritable(self.path, exc) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
