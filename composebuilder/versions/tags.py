"""Tag eligibility and version ordering for registry tag lists.

A tag is *eligible* when it passes two checks:

1. None of its tokens (the tag split on ``-``, ``.``, ``_`` and ``+``,
   lower-cased) starts with an excluded marker such as ``rc`` or ``latest``.
2. It is version shaped: an optional ``v`` prefix, one to four dot-separated
   numeric components, and an optional ``-<suffix>``.  A suffix is only
   accepted when it equals the channel the catalog entry follows; entries
   without a channel only accept plain version tags.

Eligible tags are ordered numerically component by component, with missing
components counted as zero, so ``1.10.0`` sorts above ``1.9.0``.  Ties such as
``1.2`` and ``1.2.0`` are broken by component count and then by the tag text,
which keeps the selection deterministic.

Examples
--------
>>> TagPolicy().select_latest(["1.2.0", "1.10.0", "1.9.0"])
'1.10.0'
>>> TagPolicy().select_latest(["2.0.0-rc1", "1.9.9", "latest"])
'1.9.9'
>>> TagPolicy().select_latest(["3.1-alpine", "3.2"], channel="alpine")
'3.1-alpine'

"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_EXCLUDED_MARKERS: tuple[str, ...] = (
    "latest",
    "rc",
    "alpha",
    "beta",
    "dev",
    "snapshot",
    "nightly",
    "preview",
)

_MAX_COMPONENTS = 4
_VERSION_TAG = re.compile(
    r"^v?(?P<numbers>\d+(?:\.\d+){0,%d})(?:-(?P<suffix>[0-9A-Za-z][0-9A-Za-z._-]*))?$"
    % (_MAX_COMPONENTS - 1)
)
_TOKEN_SEPARATORS = re.compile(r"[-._+]")


class VersionKey(typ.NamedTuple):
    """Sort key for an eligible tag."""

    numbers: tuple[int, ...]
    precision: int
    tag: str


@dc.dataclass(frozen=True, slots=True)
class TagPolicy:
    """Deterministic channel filter and ordering for registry tags."""

    excluded_markers: tuple[str, ...] = DEFAULT_EXCLUDED_MARKERS

    def is_excluded(self, tag: str) -> bool:
        """Return whether any token of ``tag`` starts with an excluded marker."""
        tokens = [
            token
            for token in _TOKEN_SEPARATORS.split(tag.lower())
            if token and not token.isdigit()
        ]
        return any(
            token.startswith(marker)
            for token in tokens
            for marker in self.excluded_markers
        )

    def version_key(self, tag: str, *, channel: str | None = None) -> VersionKey | None:
        """Return the sort key for ``tag``, or ``None`` when it is ineligible."""
        if not tag or self.is_excluded(tag):
            return None

        match = _VERSION_TAG.match(tag)
        if match is None:
            return None
        if match.group("suffix") != channel:
            return None

        parts = tuple(int(part) for part in match.group("numbers").split("."))
        padded = parts + (0,) * (_MAX_COMPONENTS - len(parts))
        return VersionKey(numbers=padded, precision=len(parts), tag=tag)

    def eligible(
        self, tags: cabc.Iterable[str], *, channel: str | None = None
    ) -> list[str]:
        """Return the eligible tags ordered from highest to lowest."""
        keyed = [
            key
            for key in (self.version_key(tag, channel=channel) for tag in tags)
            if key is not None
        ]
        keyed.sort(reverse=True)
        return [key.tag for key in keyed]

    def select_latest(
        self, tags: cabc.Iterable[str], *, channel: str | None = None
    ) -> str | None:
        """Return the highest eligible tag, or ``None`` when none qualifies."""
        ranked = self.eligible(tags, channel=channel)
        return ranked[0] if ranked else None
