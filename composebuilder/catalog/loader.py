"""Loaders for YAML seed catalogs and JSON catalog files."""

from __future__ import annotations

import importlib.resources
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .models import CatalogEntry
from .validation import CatalogValidationError, validate_catalog

YAML_VERSION = (1, 2)
DEFAULT_CATALOG_RESOURCE = "default_catalog.yaml"
_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def parse_catalog_yaml(text: str) -> list[CatalogEntry]:
    """Parse YAML catalog text into validated entries."""
    try:
        loaded = _yaml().load(text)
    except YAMLError as exc:
        raise CatalogValidationError([f"failed to parse YAML: {exc}"]) from exc

    if loaded is None:
        raise CatalogValidationError(["catalog file is empty"])

    try:
        entries = msgspec.convert(loaded, type=list[CatalogEntry])
    except msgspec.ValidationError as exc:
        raise CatalogValidationError([f"schema validation failed: {exc}"]) from exc

    return validate_catalog(entries)


def decode_catalog_json(data: bytes | str) -> list[CatalogEntry]:
    """Decode a JSON catalog document into validated entries."""
    try:
        entries = msgspec.json.decode(data, type=list[CatalogEntry])
    except msgspec.ValidationError as exc:
        raise CatalogValidationError([f"schema validation failed: {exc}"]) from exc
    except msgspec.DecodeError as exc:
        raise CatalogValidationError([f"failed to parse JSON: {exc}"]) from exc
    return validate_catalog(entries)


def load_catalog(path: Path | str) -> list[CatalogEntry]:
    """Load a catalog file, choosing the parser from the file suffix."""
    path_obj = Path(path)
    try:
        raw = path_obj.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogValidationError([f"failed to read {path_obj}: {exc}"]) from exc

    if path_obj.suffix.lower() in _YAML_SUFFIXES:
        return parse_catalog_yaml(raw)
    return decode_catalog_json(raw)


def default_catalog() -> list[CatalogEntry]:
    """Return the catalog bundled with the package."""
    resource = importlib.resources.files(__package__) / DEFAULT_CATALOG_RESOURCE
    return parse_catalog_yaml(resource.read_text(encoding="utf-8"))


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml
