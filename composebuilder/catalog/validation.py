"""Validation rules for the service catalog."""

from __future__ import annotations

import re
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import CatalogEntry


ENTRY_ID_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9_-]{0,62}[a-z0-9])?$")


class CatalogValidationError(ValueError):
    """Raised when a catalog fails structural validation."""

    def __init__(self, issues: list[str]) -> None:
        """Keep the individual issues alongside the joined message."""
        super().__init__("\n".join(issues))
        self.issues = issues


def _entry_issues(index: int, entry: CatalogEntry) -> cabc.Iterator[str]:
    label = f"entries[{index}]"
    if not ENTRY_ID_PATTERN.match(entry.id):
        yield f"{label}.id {entry.id!r} must be a lowercase slug"
    if not entry.name.strip():
        yield f"{label}.name must not be empty"
    if entry.image != entry.image.strip():
        yield f"{label}.image must not have surrounding whitespace"
    if entry.registry.channel is not None and not entry.registry.channel.strip():
        yield f"{label}.registry.channel must not be blank when set"


def validate_catalog(entries: list[CatalogEntry]) -> list[CatalogEntry]:
    """Validate catalog entries, returning them unchanged when all checks pass.

    Raises
    ------
    CatalogValidationError
        If any entry is malformed or two entries share an identifier.

    """
    issues: list[str] = []
    seen: dict[str, int] = {}

    for index, entry in enumerate(entries):
        issues.extend(_entry_issues(index, entry))
        first = seen.setdefault(entry.id, index)
        if first != index:
            issues.append(
                f"entries[{index}].id {entry.id!r} duplicates entries[{first}]"
            )

    if issues:
        raise CatalogValidationError(issues)
    return entries
