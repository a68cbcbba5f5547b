"""Exception hierarchy for nvdfeeds.

Every failure raised by the library derives from ``NvdFeedError`` so callers
can catch the whole family at once, while the subclasses keep the different
failure modes apart::

    NvdFeedError
    ├── InvalidIdentifierError   malformed CVE ID or unknown CVE year
    ├── MetadataError            .meta file missing or malformed attribute
    ├── NotDiscoveredError       catalog used before discover()
    ├── FeedNotPulledError       record lookup before json_pull()
    ├── NotFoundError
    │   ├── UnknownFeedError     bulk feed query with absent names
    │   └── UnknownIdentifierError  bulk CVE query with absent IDs
    ├── IntegrityError           checksum mismatch after extraction
    ├── TransportError           non-2xx HTTP response
    └── CatalogError             catalog supplier output unusable
"""

from typing import Any


class NvdFeedError(Exception):
    """Base exception for all feed operations."""

    def __init__(self, message: str, feed_name: str | None = None, details: dict[str, Any] | None = None):
        self.feed_name = feed_name
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.feed_name:
            return f"[{self.feed_name}] {super().__str__()}"
        return super().__str__()


class InvalidIdentifierError(NvdFeedError, ValueError):
    """Raised when a CVE ID does not match ``CVE-YYYY-NNNN+``."""

    def __init__(self, message: str, identifier: Any = None, **kwargs: Any):
        self.identifier = identifier
        super().__init__(message, **kwargs)


class MetadataError(NvdFeedError, ValueError):
    """Raised when a .meta file lacks a required attribute."""

    def __init__(self, message: str, attribute: str | None = None, **kwargs: Any):
        self.attribute = attribute
        super().__init__(message, **kwargs)


class NotDiscoveredError(NvdFeedError):
    """Raised when the catalog is queried before ``discover()``."""


class FeedNotPulledError(NvdFeedError):
    """Raised when records are read before the JSON file is materialized."""


class NotFoundError(NvdFeedError, LookupError):
    """Raised when a bulk request names items that do not exist."""

    def __init__(self, message: str, missing: list[str] | None = None, **kwargs: Any):
        self.missing = list(missing or [])
        super().__init__(message, **kwargs)


class UnknownFeedError(NotFoundError):
    """One or more requested feed names were not discovered."""


class UnknownIdentifierError(NotFoundError):
    """One or more requested CVE IDs are absent from the feed."""


class IntegrityError(NvdFeedError):
    """Raised when an extracted file does not match the published SHA-256."""

    def __init__(self, message: str, path: Any = None, expected: str | None = None, actual: str | None = None, **kwargs: Any):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(message, **kwargs)


class TransportError(NvdFeedError):
    """Raised when an HTTP request ends with a non-success status."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None, **kwargs: Any):
        self.url = url
        self.status_code = status_code
        super().__init__(message, **kwargs)


class CatalogError(NvdFeedError):
    """Raised when the catalog supplier produces unusable output."""
