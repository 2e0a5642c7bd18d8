"""Service catalog models, loaders and storage.

Quick examples
--------------

Validate a seed catalog::

    >>> from composebuilder.catalog import load_catalog
    >>> entries = load_catalog("catalog.yaml")

Read and replace the stored catalog::

    >>> from composebuilder.catalog import JsonCatalogStore
    >>> store = JsonCatalogStore("data/catalog.json")
    >>> entries = store.load()
    >>> store.save([entry.with_version("1.2.0") for entry in entries])
"""

from __future__ import annotations

from .loader import (
    decode_catalog_json,
    default_catalog,
    load_catalog,
    parse_catalog_yaml,
)
from .models import CatalogEntry, RegistrySettings
from .schema import build_catalog_schema, write_catalog_schema
from .store import CatalogStore, CatalogStoreError, JsonCatalogStore
from .validation import CatalogValidationError, validate_catalog

__all__ = [
    "CatalogEntry",
    "CatalogStore",
    "CatalogStoreError",
    "CatalogValidationError",
    "JsonCatalogStore",
    "RegistrySettings",
    "build_catalog_schema",
    "decode_catalog_json",
    "default_catalog",
    "load_catalog",
    "parse_catalog_yaml",
    "validate_catalog",
    "write_catalog_schema",
]
