"""Docker Registry HTTP API v2 client used for version checks."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import typing as typ

import httpx

from composebuilder.versions.config import normalize_host
from composebuilder.versions.errors import (
    ImageNotFoundError,
    MalformedRegistryResponseError,
    RegistryHTTPError,
    RegistryNetworkError,
)
from composebuilder.versions.models import VersionCheck
from composebuilder.versions.tags import TagPolicy

if typ.TYPE_CHECKING:
    from composebuilder.versions.config import RegistryConfig

_HTTP_NOT_FOUND = 404
_HTTP_ERROR_STATUS_THRESHOLD = 400
# Upper bound on followed ``Link: rel="next"`` pages for one image
_MAX_TAG_PAGES = 20


class VersionSource(typ.Protocol):
    """Interface for resolving the latest eligible version of an image."""

    def supports(self, image: str) -> bool:
        """Return whether ``image`` is hosted on the configured registry."""
        ...

    async def check_version(
        self,
        image: str,
        current_version: str,
        *,
        channel: str | None = None,
    ) -> VersionCheck:
        """Return the highest eligible tag and whether it differs."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class ImageReference:
    """Registry host and repository path of an image reference."""

    registry: str
    repository: str


def parse_image_reference(image: str) -> ImageReference:
    """Split an image reference into registry host and repository.

    Digests and tags are discarded.  The first path segment is treated as a
    registry host when it contains a dot or a port separator, or is
    ``localhost``; otherwise the reference has no explicit registry.

    Examples
    --------
    >>> parse_image_reference("nexus.example.com:8443/team/api:1.2.0")
    ImageReference(registry='nexus.example.com:8443', repository='team/api')
    >>> parse_image_reference("bitnami/kafka")
    ImageReference(registry='', repository='bitnami/kafka')

    """
    reference = image.split("@", 1)[0].strip()
    for scheme in ("https://", "http://"):
        if reference.startswith(scheme):
            reference = reference[len(scheme) :]
            break

    last_colon = reference.rfind(":")
    if last_colon > reference.rfind("/"):
        reference = reference[:last_colon]

    segments = [segment for segment in reference.split("/") if segment]
    if not segments:
        return ImageReference(registry="", repository="")

    first = segments[0]
    if "." in first or ":" in first or first == "localhost":
        return ImageReference(registry=first, repository="/".join(segments[1:]))
    return ImageReference(registry="", repository="/".join(segments))


class RegistryClient:
    """Resolve image versions from a Docker Registry v2 compatible endpoint.

    Parameters
    ----------
    config
        Registry host, credentials and per-image timeout.
    policy
        Tag eligibility and ordering rules.  Defaults to :class:`TagPolicy`.
    http_client
        Optional ``httpx.AsyncClient`` for testing.  When omitted the
        instance creates and owns its own client.

    Examples
    --------
    >>> import asyncio
    >>> client = RegistryClient(RegistryConfig("nexus.example", "ci", "secret"))
    >>> # check = asyncio.run(client.check_version("nexus.example/team/api", "1.0.0"))
    >>> asyncio.run(client.aclose())

    """

    def __init__(
        self,
        config: RegistryConfig,
        *,
        policy: TagPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with registry configuration."""
        self._config = config
        self._policy = policy or TagPolicy()
        self._auth = httpx.BasicAuth(config.username, config.password)
        # Credentials are only ever sent to this origin
        self._origin = httpx.URL(config.base_url)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            follow_redirects=True,
        )

    @property
    def policy(self) -> TagPolicy:
        """Tag policy applied to registry tag lists."""
        return self._policy

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    def supports(self, image: str) -> bool:
        """Return whether ``image`` lives on the configured registry host."""
        reference = parse_image_reference(image)
        if not reference.registry or not reference.repository:
            return False
        return normalize_host(reference.registry) == self._config.normalized_host

    async def check_version(
        self,
        image: str,
        current_version: str,
        *,
        channel: str | None = None,
    ) -> VersionCheck:
        """Return the highest eligible tag for ``image``.

        Parameters
        ----------
        image
            Image reference hosted on the configured registry.
        current_version
            Version currently pinned in the catalog; empty when unpinned.
        channel
            Tag suffix the entry follows, if any.

        Returns
        -------
        VersionCheck
            ``changed`` is true when an eligible tag exists and differs from
            ``current_version``.

        Raises
        ------
        RegistryNetworkError
            On timeout or transport failure.
        ImageNotFoundError
            When the registry answers 404 for the repository.
        RegistryHTTPError
            On any other non-2xx response.
        MalformedRegistryResponseError
            When the tag list cannot be interpreted.

        """
        tags = await self.list_tags(image)
        latest = self._policy.select_latest(tags, channel=channel)
        if latest is None:
            return VersionCheck(new_version=None, changed=False)
        return VersionCheck(new_version=latest, changed=latest != current_version)

    async def list_tags(self, image: str) -> list[str]:
        """Return every tag the registry lists for ``image``.

        The whole query, pagination included, is bounded by the configured
        timeout.
        """
        reference = parse_image_reference(image)
        url = f"{self._config.base_url}/v2/{reference.repository}/tags/list"
        tags: list[str] = []

        try:
            async with asyncio.timeout(self._config.timeout_s):
                next_url: str | None = url
                pages = 0
                while next_url is not None and pages < _MAX_TAG_PAGES:
                    response = await self._get(image, next_url)
                    tags.extend(self._parse_tags(image, response))
                    next_url = self._next_page_url(image, response)
                    pages += 1
        except TimeoutError as exc:
            raise RegistryNetworkError.timeout(image, self._config.timeout_s) from exc

        return tags

    async def _get(self, image: str, url: str) -> httpx.Response:
        """Perform one authenticated GET and validate the status code."""
        try:
            response = await self._client.get(
                url,
                auth=self._auth,
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as exc:
            raise RegistryNetworkError.timeout(image, self._config.timeout_s) from exc
        except (httpx.TooManyRedirects, httpx.DecodingError) as exc:
            raise MalformedRegistryResponseError.unreadable(image, str(exc)) from exc
        except httpx.HTTPError as exc:
            raise RegistryNetworkError.transport(image, str(exc)) from exc
        except httpx.InvalidURL as exc:
            raise MalformedRegistryResponseError.unreadable(image, str(exc)) from exc

        if response.status_code == _HTTP_NOT_FOUND:
            raise ImageNotFoundError(image)
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise RegistryHTTPError(image, response.status_code)
        return response

    @staticmethod
    def _parse_tags(image: str, response: httpx.Response) -> list[str]:
        """Extract the ``tags`` array from a tag list response."""
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedRegistryResponseError.invalid_json(
                image, response.text
            ) from exc

        if not isinstance(payload, dict):
            raise MalformedRegistryResponseError.invalid_tags(image)

        raw_tags = payload.get("tags")
        # Registries report repositories without tags as ``"tags": null``
        if raw_tags is None:
            return []
        if not isinstance(raw_tags, list):
            raise MalformedRegistryResponseError.invalid_tags(image)

        return [tag.strip() for tag in raw_tags if isinstance(tag, str)]

    def _next_page_url(self, image: str, response: httpx.Response) -> str | None:
        """Return the absolute URL of the next tag page, if the registry sent one.

        Raises
        ------
        MalformedRegistryResponseError
            When the link cannot be parsed or points away from the configured
            registry's scheme, host and port.

        """
        link = response.links.get("next", {}).get("url")
        if not link:
            return None
        try:
            next_url = response.url.join(link)
        except httpx.InvalidURL as exc:
            raise MalformedRegistryResponseError.invalid_next_page(image, link) from exc

        origin = self._origin
        if (next_url.scheme, next_url.host, next_url.port) != (
            origin.scheme,
            origin.host,
            origin.port,
        ):
            raise MalformedRegistryResponseError.invalid_next_page(image, link)
        return str(next_url)
