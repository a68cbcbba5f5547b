"""Parsing of the ``.meta`` file published beside each feed archive.

A meta file is a handful of ``key:value`` tokens::

    lastModifiedDate:2017-10-19T03:27:02-04:00
    size:29443314
    zipSize:2008493
    gzSize:2008357
    sha256:33ED52D451692596D644F23742ED42B4E350258B11ACB900F969F148FCE3777B

Only the first colon splits a token, so the timestamp keeps its own colons.
"""

import re
from dataclasses import dataclass

import requests

from .downloaders import fetch_text, requests_session
from .exceptions import MetadataError

_DIGITS_RE = re.compile(r"^[0-9]+$")
_SHA256_RE = re.compile(r"^[0-9A-F]{64}$", flags=re.IGNORECASE)


@dataclass(frozen=True)
class MetadataRecord:
    """Validated content of one meta file.

    Attributes:
        last_modified_date: e.g. ``2017-10-19T03:27:02-04:00``.
        size: Size in bytes of the uncompressed JSON file.
        zip_size: Size in bytes of the zip archive.
        gz_size: Size in bytes of the gz archive.
        sha256: SHA-256 of the uncompressed JSON file, as published.
    """

    last_modified_date: str
    size: str
    zip_size: str
    gz_size: str
    sha256: str

    @classmethod
    def from_text(cls, text: str) -> "MetadataRecord":
        """Build a record from raw meta file text.

        Raises:
            MetadataError: If an attribute is missing or malformed.
        """
        fields: dict[str, str] = {}
        for token in text.split():
            key, sep, value = token.partition(":")
            if sep:
                fields[key] = value

        if not fields.get("lastModifiedDate"):
            raise MetadataError("no lastModifiedDate attribute found", attribute="lastModifiedDate")
        for key in ("size", "zipSize", "gzSize"):
            if not _DIGITS_RE.match(fields.get(key, "")):
                raise MetadataError(f"no valid {key} attribute found", attribute=key)
        if not _SHA256_RE.match(fields.get("sha256", "")):
            raise MetadataError("no valid sha256 attribute found", attribute="sha256")

        return cls(
            last_modified_date=fields["lastModifiedDate"],
            size=fields["size"],
            zip_size=fields["zipSize"],
            gz_size=fields["gzSize"],
            sha256=fields["sha256"],
        )


def parse_meta(session: requests.Session, url: str, timeout: tuple[float, float] | None = None) -> MetadataRecord:
    """Fetch and parse the meta file at ``url``."""
    return MetadataRecord.from_text(fetch_text(session, url, timeout=timeout))


class MetaFile:
    """A meta file URL that may or may not have been parsed yet.

    Setting :attr:`url` discards any previously parsed record, so the object
    is either "just a URL" or "URL plus a complete record".

    Example::

        m = MetaFile(session=session)
        m.url = feed.meta_url
        m.parse()
        m.sha256
    """

    def __init__(self, url: str | None = None, session: requests.Session | None = None):
        self._url = url
        self._record: MetadataRecord | None = None
        self.session = session or requests_session()

    @property
    def url(self) -> str | None:
        return self._url

    @url.setter
    def url(self, value: str | None) -> None:
        self._url = value
        self._record = None

    @property
    def record(self) -> MetadataRecord | None:
        """The parsed record, or ``None`` until :meth:`parse` succeeds."""
        return self._record

    def parse(self, url: str | None = None) -> MetadataRecord:
        """Fetch and parse the meta file.

        Args:
            url: Replaces the current URL before parsing when given.

        Returns:
            The parsed record, also kept on :attr:`record`.

        Raises:
            MetadataError: If no URL is set or the content is invalid.
            TransportError: On a non-2xx response.
        """
        if url is not None:
            self.url = url
        if not self._url:
            raise MetadataError("Can't parse if the URL is empty")
        self._record = parse_meta(self.session, self._url)
        return self._record

    def __getattr__(self, name: str):
        # Proxy last_modified_date, size, ... to the record once parsed.
        if name in MetadataRecord.__dataclass_fields__:
            record = self.__dict__.get("_record")
            return getattr(record, name) if record is not None else None
        raise AttributeError(name)
