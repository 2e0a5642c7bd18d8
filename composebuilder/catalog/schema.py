"""JSON Schema export for catalog documents."""

from __future__ import annotations

import json
import typing as typ
from pathlib import Path  # noqa: TC003

import msgspec

from .models import CatalogEntry

SCHEMA_ID = "https://composebuilder.example/schemas/catalog.json"


def build_catalog_schema() -> dict[str, typ.Any]:
    """Return the JSON Schema of a catalog document (a list of entries)."""
    schema = msgspec.json.schema(list[CatalogEntry])
    schema["$id"] = SCHEMA_ID
    return schema


def write_catalog_schema(path: Path) -> Path:
    """Write the catalog JSON Schema to ``path`` and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(build_catalog_schema(), indent=2), encoding="utf-8")
    return path
