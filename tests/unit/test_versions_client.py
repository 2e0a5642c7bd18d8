"""Unit tests for the Docker Registry v2 client."""

from __future__ import annotations

import typing as typ

import httpx
import pytest

from composebuilder.versions.client import (
    ImageReference,
    RegistryClient,
    parse_image_reference,
)
from composebuilder.versions.config import RegistryConfig
from composebuilder.versions.errors import (
    ErrorKind,
    ImageNotFoundError,
    MalformedRegistryResponseError,
    RegistryHTTPError,
    RegistryNetworkError,
)

IMAGE = "registry.test/team/api"
TAGS_URL = "https://registry.test/v2/team/api/tags/list"

type Handler = typ.Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, *, follow_redirects: bool = False) -> RegistryClient:
    config = RegistryConfig(host="registry.test", username="ci", password="secret")
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), follow_redirects=follow_redirects
    )
    return RegistryClient(config, http_client=http_client)


def _tags(*tags: str) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "team/api", "tags": list(tags)})

    return handler


class TestParseImageReference:
    """Tests for ``parse_image_reference``."""

    @pytest.mark.parametrize(
        ("image", "expected"),
        [
            ("registry.test/team/api", ImageReference("registry.test", "team/api")),
            ("registry.test/team/api:1.2.0", ImageReference("registry.test", "team/api")),
            (
                "registry.test:5000/api@sha256:abc123",
                ImageReference("registry.test:5000", "api"),
            ),
            ("localhost/api", ImageReference("localhost", "api")),
            ("bitnami/kafka", ImageReference("", "bitnami/kafka")),
            ("postgres", ImageReference("", "postgres")),
        ],
    )
    def test_splits_host_and_repository(
        self, image: str, expected: ImageReference
    ) -> None:
        """Tags and digests are dropped; hosts need a dot, port or localhost."""
        assert parse_image_reference(image) == expected


class TestSupports:
    """Tests for ``RegistryClient.supports``."""

    def test_matches_configured_host_only(self) -> None:
        """Only images on the configured registry are handled."""
        client = _client(_tags())
        assert client.supports("registry.test/team/api")
        assert client.supports("REGISTRY.test/team/api:2.0")
        assert not client.supports("ghcr.io/team/api")
        assert not client.supports("postgres")
        assert not client.supports("registry.test/")


@pytest.mark.asyncio
class TestCheckVersion:
    """Tests for ``RegistryClient.check_version``."""

    async def test_selects_highest_eligible_tag(self) -> None:
        """The newest version-shaped tag wins and is reported as changed."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"tags": ["1.9.0", "1.10.0", "latest", "2.0.0-rc1"]}
            )

        client = _client(handler)
        check = await client.check_version(IMAGE, "1.9.0")

        assert check.new_version == "1.10.0"
        assert check.changed is True
        assert str(seen[0].url) == TAGS_URL
        assert seen[0].headers["Authorization"].startswith("Basic ")

    async def test_unchanged_when_current_is_latest(self) -> None:
        """No change is reported when the pinned tag is already the newest."""
        check = await _client(_tags("1.0.0", "1.1.0")).check_version(IMAGE, "1.1.0")
        assert check.new_version == "1.1.0"
        assert check.changed is False

    async def test_unpinned_entry_changes_when_any_tag_eligible(self) -> None:
        """An empty current version is always behind an eligible tag."""
        check = await _client(_tags("0.1.0")).check_version(IMAGE, "")
        assert check.changed is True

    async def test_no_eligible_tag_is_not_an_error(self) -> None:
        """Only excluded tags means no new version and no change."""
        check = await _client(_tags("latest", "nightly")).check_version(IMAGE, "1.0")
        assert check.new_version is None
        assert check.changed is False

    async def test_null_tags_means_no_version(self) -> None:
        """Registries report empty repositories with ``"tags": null``."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"name": "team/api", "tags": None})

        check = await _client(handler).check_version(IMAGE, "1.0")
        assert check.new_version is None

    async def test_follows_next_page_links(self) -> None:
        """Tags from every ``Link: rel="next"`` page are considered."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("last") == "1.1.0":
                return httpx.Response(200, json={"tags": ["2.0.0"]})
            return httpx.Response(
                200,
                json={"tags": ["1.0.0", "1.1.0"]},
                headers={
                    "Link": '</v2/team/api/tags/list?n=2&last=1.1.0>; rel="next"'
                },
            )

        check = await _client(handler).check_version(IMAGE, "1.0.0")
        assert check.new_version == "2.0.0"

    async def test_next_page_on_another_host_is_rejected(self) -> None:
        """Credentials never follow a next-page link to a different origin."""
        hosts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            return httpx.Response(
                200,
                json={"tags": ["1.0.0"]},
                headers={
                    "Link": '<https://elsewhere.test/v2/x?n=1>; rel="next"'
                },
            )

        with pytest.raises(MalformedRegistryResponseError, match="next-page"):
            await _client(handler).check_version(IMAGE, "1.0.0")
        assert hosts == ["registry.test"]

    async def test_next_page_with_another_scheme_is_rejected(self) -> None:
        """A downgrade to plain HTTP on the same host is not followed."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(
                200,
                json={"tags": ["1.0.0"]},
                headers={
                    "Link": '<http://registry.test/v2/x?n=1>; rel="next"'
                },
            )

        with pytest.raises(MalformedRegistryResponseError):
            await _client(handler).check_version(IMAGE, "1.0.0")
        assert seen == [TAGS_URL]


@pytest.mark.asyncio
class TestRegistryFailures:
    """Failures map onto typed errors and never produce a guessed version."""

    async def test_404_raises_not_found(self) -> None:
        """A missing repository is reported as not found."""
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(ImageNotFoundError) as excinfo:
            await client.check_version(IMAGE, "1.0")
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    async def test_server_error_raises_http_error(self) -> None:
        """Other non-2xx statuses carry the status code."""
        client = _client(lambda request: httpx.Response(503))
        with pytest.raises(RegistryHTTPError, match="503"):
            await client.check_version(IMAGE, "1.0")

    async def test_invalid_json_raises_malformed(self) -> None:
        """An undecodable body is a malformed response."""
        client = _client(lambda request: httpx.Response(200, text="<html>oops"))
        with pytest.raises(MalformedRegistryResponseError) as excinfo:
            await client.check_version(IMAGE, "1.0")
        assert excinfo.value.kind is ErrorKind.MALFORMED_RESPONSE

    async def test_non_list_tags_raise_malformed(self) -> None:
        """A ``tags`` field that is not a list is rejected."""
        client = _client(lambda request: httpx.Response(200, json={"tags": "1.0"}))
        with pytest.raises(MalformedRegistryResponseError):
            await client.check_version(IMAGE, "1.0")

    async def test_transport_failure_is_transient(self) -> None:
        """Connection errors surface as retryable network errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        with pytest.raises(RegistryNetworkError) as excinfo:
            await _client(handler).check_version(IMAGE, "1.0")
        assert excinfo.value.transient is True
        assert excinfo.value.kind is ErrorKind.NETWORK

    async def test_timeout_is_transient(self) -> None:
        """HTTP timeouts surface as network errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "read timed out"
            raise httpx.ReadTimeout(msg, request=request)

        with pytest.raises(RegistryNetworkError, match="timed out|timeout"):
            await _client(handler).check_version(IMAGE, "1.0")

    async def test_redirect_loop_is_a_permanent_failure(self) -> None:
        """Exceeding the redirect limit is reported, not retried."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": TAGS_URL})

        client = _client(handler, follow_redirects=True)
        with pytest.raises(MalformedRegistryResponseError) as excinfo:
            await client.check_version(IMAGE, "1.0")
        assert excinfo.value.transient is False

    async def test_undecodable_body_is_a_permanent_failure(self) -> None:
        """A body that fails content decoding is a malformed response."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"not gzip", headers={"Content-Encoding": "gzip"}
            )

        with pytest.raises(MalformedRegistryResponseError) as excinfo:
            await _client(handler).check_version(IMAGE, "1.0")
        assert excinfo.value.kind is ErrorKind.MALFORMED_RESPONSE
        assert excinfo.value.transient is False

    async def test_other_request_errors_are_network_errors(self) -> None:
        """Any remaining httpx request failure maps onto a network error."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "request could not be sent"
            raise httpx.RequestError(msg, request=request)

        with pytest.raises(RegistryNetworkError, match="could not be sent"):
            await _client(handler).check_version(IMAGE, "1.0")


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open() -> None:
    """Only clients the registry client created are closed."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_tags()))
    config = RegistryConfig(host="registry.test", username="ci", password="secret")
    client = RegistryClient(config, http_client=http_client)

    await client.aclose()

    assert not http_client.is_closed
    await http_client.aclose()
