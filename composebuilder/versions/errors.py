"""Errors raised by registry version synchronisation."""

from __future__ import annotations

import enum

# Response body preview length for error messages
_BODY_PREVIEW_LIMIT = 100


class ErrorKind(enum.StrEnum):
    """Classification of a failed version check."""

    NETWORK = "network"
    NOT_FOUND = "not_found"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class VersionSyncError(Exception):
    """Base class for version synchronisation errors."""


class VersionSyncConfigError(VersionSyncError):
    """Raised when synchronisation settings in the environment are invalid."""

    @classmethod
    def invalid_number(cls, env_var: str, raw: str) -> VersionSyncConfigError:
        """Return an error for a non-numeric or out-of-range setting."""
        return cls(f"{env_var} must be a positive number, got: {raw!r}")

    @classmethod
    def invalid_flag(cls, env_var: str, raw: str) -> VersionSyncConfigError:
        """Return an error for an unrecognised boolean setting."""
        return cls(f"{env_var} must be a boolean flag, got: {raw!r}")

    @classmethod
    def missing_client(cls) -> VersionSyncConfigError:
        """Return an error for an enabled gate without a registry client."""
        return cls("a registry client is required when synchronisation is enabled")


class RegistryError(VersionSyncError):
    """Base class for failures talking to the container registry.

    Attributes
    ----------
    kind
        Classification reported in version check results.
    transient
        Whether a single retry may succeed.

    """

    kind: ErrorKind = ErrorKind.HTTP_ERROR
    transient: bool = False


class RegistryNetworkError(RegistryError):
    """Raised for timeouts and transport failures reaching the registry."""

    kind = ErrorKind.NETWORK
    transient = True

    @classmethod
    def timeout(cls, image: str, timeout_s: float) -> RegistryNetworkError:
        """Return an error for a tag query that exceeded its timeout."""
        return cls(f"registry request for {image} timed out after {timeout_s:g}s")

    @classmethod
    def transport(cls, image: str, detail: str) -> RegistryNetworkError:
        """Return an error for connection, DNS or TLS failures."""
        return cls(f"registry request for {image} failed: {detail}")


class ImageNotFoundError(RegistryError):
    """Raised when the registry does not know the image repository."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, image: str) -> None:
        """Initialise with the missing image reference."""
        self.image = image
        super().__init__(f"image {image} not found on registry")


class RegistryHTTPError(RegistryError):
    """Raised when the registry answers with an unexpected HTTP status."""

    kind = ErrorKind.HTTP_ERROR

    def __init__(self, image: str, status_code: int) -> None:
        """Initialise with the image reference and HTTP status code."""
        self.image = image
        self.status_code = status_code
        super().__init__(f"registry HTTP {status_code} for {image}")


class MalformedRegistryResponseError(RegistryError):
    """Raised when a tag list payload cannot be interpreted."""

    kind = ErrorKind.MALFORMED_RESPONSE

    @classmethod
    def invalid_json(cls, image: str, body: str) -> MalformedRegistryResponseError:
        """Return an error for a body that is not JSON."""
        preview = body[:_BODY_PREVIEW_LIMIT]
        return cls(f"registry returned invalid JSON for {image}: {preview!r}")

    @classmethod
    def invalid_tags(cls, image: str) -> MalformedRegistryResponseError:
        """Return an error for a payload whose ``tags`` field is not a list."""
        return cls(f"registry tag list for {image} is not a list of strings")

    @classmethod
    def unreadable(cls, image: str, detail: str) -> MalformedRegistryResponseError:
        """Return an error for a response httpx could not follow or decode."""
        return cls(f"registry response for {image} could not be read: {detail}")

    @classmethod
    def invalid_next_page(
        cls, image: str, link: str
    ) -> MalformedRegistryResponseError:
        """Return an error for a next-page link off the configured registry."""
        return cls(f"registry sent an unusable next-page link for {image}: {link!r}")


class CatalogEntryNotFoundError(VersionSyncError):
    """Raised when a manual refresh names an entry missing from the catalog."""

    def __init__(self, entry_id: str) -> None:
        """Initialise with the unknown entry identifier."""
        self.entry_id = entry_id
        super().__init__(f"No catalog entry with id '{entry_id}' exists.")


class SweepInProgressError(VersionSyncError):
    """Raised when a manual trigger arrives while a sweep is running."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("A version sweep is already in progress.")


class SchedulerStoppedError(VersionSyncError):
    """Raised when a trigger arrives after the scheduler was stopped."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("The version scheduler has been stopped.")


class CatalogSaveError(VersionSyncError):
    """Raised when refreshed versions could not be written to the catalog."""

    def __init__(self, reason: str) -> None:
        """Initialise with the underlying store failure."""
        self.reason = reason
        super().__init__(f"Saving refreshed catalog versions failed: {reason}")
