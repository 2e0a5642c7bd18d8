"""Typed service catalog structures."""

from __future__ import annotations

import msgspec


class RegistrySettings(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Per-entry registry synchronisation settings.

    Attributes
    ----------
    sync : bool
        When ``False`` the entry opts out of registry version refreshes.
    channel : str, optional
        Tag suffix the entry follows (``1.4.0-alpine`` for ``alpine``).  When
        unset only plain version tags are eligible.

    """

    sync: bool = True
    channel: str | None = None


class CatalogEntry(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Reusable service template with an optional pinned image version.

    Attributes
    ----------
    id : str
        Identifier, unique within the catalog and never rewritten.
    name : str
        Human-readable service name.
    image : str
        Image reference without tag, e.g. ``registry.example.com/team/api``.
    version : str
        Pinned image tag.  An empty string means the entry is unpinned.
    registry : RegistrySettings
        Channel filter and opt-out flag for version synchronisation.
    description : str, optional
        Short description shown alongside the template.
    default_ports, default_volumes, default_networks : list[str]
        Compose defaults copied into new service instances.
    default_env : dict[str, str]
        Environment defaults for new service instances.
    default_container_name : str, optional
        Container name suggested for new instances.
    spring_boot : bool
        Whether the service ships an ``application.properties`` template.
    properties_template_file : str, optional
        Path of the properties template for Spring Boot services.

    """

    id: str
    name: str
    image: str = ""
    version: str = ""
    registry: RegistrySettings = msgspec.field(default_factory=RegistrySettings)
    description: str | None = None
    default_ports: list[str] = msgspec.field(default_factory=list)
    default_volumes: list[str] = msgspec.field(default_factory=list)
    default_env: dict[str, str] = msgspec.field(default_factory=dict)
    default_container_name: str | None = None
    default_networks: list[str] = msgspec.field(default_factory=list)
    spring_boot: bool = False
    properties_template_file: str | None = None

    @property
    def is_pinned(self) -> bool:
        """Return whether the entry records a pinned version."""
        return bool(self.version)

    def with_version(self, version: str) -> CatalogEntry:
        """Return a copy of the entry pinned to ``version``."""
        return msgspec.structs.replace(self, version=version)
