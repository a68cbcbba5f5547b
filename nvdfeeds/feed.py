"""One NVD JSON feed: metadata, archives, local JSON file and records.

A ``Feed`` starts out holding only the links published on the feeds page.
Everything else is pulled on demand and then kept:

- :meth:`Feed.meta_pull` loads the ``.meta`` descriptor,
- :meth:`Feed.json_pull` materializes the JSON document on disk (reusing a
  local copy whose SHA-256 still matches) and parses its summary fields,
- :meth:`Feed.lookup` / :meth:`Feed.lookup_many` read CVE records from it.

State only accumulates; :meth:`Feed.update` re-pulls exactly what had been
pulled before.
"""

import datetime as dt
import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import requests

from .config import FeedSettings
from .downloaders import (
    download_file,
    extract_zip_flat,
    file_matches_sha256,
    requests_session,
    sha256_file,
    url_filename,
)
from .exceptions import FeedNotPulledError, IntegrityError, NvdFeedError, UnknownIdentifierError
from .identifiers import normalize_cve_id, normalize_cve_ids
from .meta import MetadataRecord, parse_meta

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%MZ"


class ArchiveKind(str, Enum):
    """Archive flavours published for every feed."""

    GZ = "gz"
    ZIP = "zip"


@dataclass(frozen=True)
class FeedDescriptor:
    """Links for one feed as listed by the catalog supplier.

    Attributes:
        name: e.g. ``CVE-2007``, ``CVE-Modified`` or ``CVE-Recent``.
        updated: Last update as displayed, e.g.
            ``10/19/2017 3:27:02 AM -04:00``.  Only compared for inequality.
        meta_url: URL of the ``.meta`` file.
        gz_url: URL of the ``.json.gz`` archive.
        zip_url: URL of the ``.json.zip`` archive.
    """

    name: str
    updated: str
    meta_url: str
    gz_url: str
    zip_url: str


@dataclass(frozen=True)
class FeedSummary:
    """Header fields of a feed JSON document.

    Attributes:
        data_type: ``CVE_data_type``, e.g. ``CVE``.
        data_format: ``CVE_data_format``, e.g. ``MITRE``.
        data_version: ``CVE_data_version`` as a number, e.g. ``4.0``.
        data_number_of_cves: ``CVE_data_numberOfCVEs`` as an integer.
        data_timestamp: Calendar date of ``CVE_data_timestamp``.
    """

    data_type: str
    data_format: str
    data_version: float
    data_number_of_cves: int
    data_timestamp: dt.date

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "FeedSummary":
        """Read the summary fields of a parsed feed document.

        Raises:
            KeyError: If a header field is absent.
            ValueError: If a header field does not parse.
        """
        return cls(
            data_type=doc["CVE_data_type"],
            data_format=doc["CVE_data_format"],
            data_version=float(doc["CVE_data_version"]),
            data_number_of_cves=int(doc["CVE_data_numberOfCVEs"]),
            data_timestamp=dt.datetime.strptime(doc["CVE_data_timestamp"], TIMESTAMP_FORMAT).date(),
        )


def record_id(item: dict[str, Any]) -> str | None:
    """Return ``cve.CVE_data_meta.ID`` of a ``CVE_Items`` entry."""
    cve = item.get("cve") or {}
    meta = cve.get("CVE_data_meta") or {}
    return meta.get("ID")


class Feed:
    """A named NVD feed with lazily pulled metadata and JSON document.

    Attributes:
        session: Requests session used for every transfer.
        settings: Supplies the default storage location and timeouts.
    """

    def __init__(
        self,
        name: str,
        updated: str,
        meta_url: str,
        gz_url: str,
        zip_url: str,
        *,
        session: requests.Session | None = None,
        settings: FeedSettings | None = None,
    ):
        self.settings = settings or FeedSettings()
        self.session = session or requests_session(self.settings)
        self._descriptor = FeedDescriptor(name, updated, meta_url, gz_url, zip_url)
        self._meta: MetadataRecord | None = None
        self._json_file: Path | None = None
        self._summary: FeedSummary | None = None

    @classmethod
    def from_descriptor(
        cls,
        descriptor: FeedDescriptor,
        *,
        session: requests.Session | None = None,
        settings: FeedSettings | None = None,
    ) -> "Feed":
        return cls(
            descriptor.name,
            descriptor.updated,
            descriptor.meta_url,
            descriptor.gz_url,
            descriptor.zip_url,
            session=session,
            settings=settings,
        )

    def __repr__(self) -> str:
        return f"<Feed {self.name} updated={self.updated!r}>"

    # ── Attributes ──────────────────────────────────────────────────────────

    @property
    def descriptor(self) -> FeedDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def updated(self) -> str:
        return self._descriptor.updated

    @property
    def meta_url(self) -> str:
        return self._descriptor.meta_url

    @property
    def gz_url(self) -> str:
        return self._descriptor.gz_url

    @property
    def zip_url(self) -> str:
        return self._descriptor.zip_url

    @property
    def meta(self) -> MetadataRecord | None:
        """Metadata from the last :meth:`meta_pull`, ``None`` before it.

        :meth:`json_pull` calls :meth:`meta_pull` as well.
        """
        return self._meta

    @property
    def json_file(self) -> Path | None:
        """Path of the JSON document, ``None`` before :meth:`json_pull`."""
        return self._json_file

    @property
    def summary(self) -> FeedSummary | None:
        """Summary fields, ``None`` until a JSON document has been parsed."""
        return self._summary

    @property
    def data_type(self) -> str | None:
        return self._summary.data_type if self._summary else None

    @property
    def data_format(self) -> str | None:
        return self._summary.data_format if self._summary else None

    @property
    def data_version(self) -> float | None:
        return self._summary.data_version if self._summary else None

    @property
    def data_number_of_cves(self) -> int | None:
        return self._summary.data_number_of_cves if self._summary else None

    @property
    def data_timestamp(self) -> dt.date | None:
        return self._summary.data_timestamp if self._summary else None

    # ── Pulls ───────────────────────────────────────────────────────────────

    def meta_pull(self) -> MetadataRecord:
        """Fetch a fresh meta file and replace :attr:`meta`.

        Returns:
            The new record.

        Raises:
            MetadataError: If the meta file is malformed.
            TransportError: On a non-2xx response.
        """
        self._meta = parse_meta(self.session, self.meta_url, timeout=self.settings.http_timeout)
        return self._meta

    def _destination(self, destination: Path | str | None) -> Path:
        return Path(destination) if destination is not None else self.settings.storage_location

    def download_archive(
        self,
        kind: ArchiveKind,
        destination: Path | str | None = None,
        sha256: str | None = None,
    ) -> Path:
        """Download the gz or zip archive of the feed.

        Args:
            kind: Which archive to fetch.
            destination: Target directory, defaults to the configured
                storage location.
            sha256: When given and a file of the same name already exists
                with this checksum, the transfer is skipped.

        Returns:
            Path of the archive on disk.

        Raises:
            TransportError: On a non-2xx response.
        """
        url = self.gz_url if ArchiveKind(kind) is ArchiveKind.GZ else self.zip_url
        target = self._destination(destination) / url_filename(url)
        if sha256 is not None and file_matches_sha256(target, sha256):
            logger.debug("%s already up to date, skipping download", target)
            return target
        return download_file(self.session, url, target, timeout=self.settings.http_timeout)

    def download_gz(self, destination: Path | str | None = None, sha256: str | None = None) -> Path:
        return self.download_archive(ArchiveKind.GZ, destination, sha256)

    def download_zip(self, destination: Path | str | None = None, sha256: str | None = None) -> Path:
        return self.download_archive(ArchiveKind.ZIP, destination, sha256)

    def json_pull(self, destination: Path | str | None = None) -> Path:
        """Make sure an up-to-date JSON document is on disk.

        Always pulls the meta file first.  A local JSON file whose SHA-256
        matches it is reused; otherwise the zip archive is downloaded,
        extracted into ``destination`` and verified.

        Args:
            destination: Target directory, defaults to the configured
                storage location.

        Returns:
            Path of the JSON document.

        Raises:
            IntegrityError: If the extracted file does not match the
                published checksum.  The file is left on disk and
                :attr:`json_file` is reset to ``None``, so nothing from a
                previous pull is served.
            TransportError: On a non-2xx response.
        """
        directory = self._destination(destination)
        json_path = directory / url_filename(self.zip_url).removesuffix(".zip")
        meta = self.meta_pull()

        if file_matches_sha256(json_path, meta.sha256):
            logger.debug("%s matches published checksum, reusing it", json_path)
            summary = self._summary if self._json_file == json_path else None
            self._json_file = json_path
            self._summary = summary or self._parse_summary(json_path)
            return json_path

        # The extraction overwrites the previous document; forget it until verified.
        self._json_file = None
        self._summary = None
        zip_path = self.download_zip(directory)
        extract_zip_flat(zip_path, directory)
        if not json_path.is_file():
            raise IntegrityError(
                f"{json_path.name} not found in {zip_path}",
                path=json_path,
                expected=meta.sha256,
                feed_name=self.name,
            )
        computed = sha256_file(json_path)
        if computed.casefold() != meta.sha256.casefold():
            raise IntegrityError(
                f"File corruption: {json_path}",
                path=json_path,
                expected=meta.sha256,
                actual=computed,
                feed_name=self.name,
            )
        summary = self._parse_summary(json_path)
        self._json_file = json_path
        self._summary = summary
        logger.info("Pulled %s: %s CVEs", self.name, summary.data_number_of_cves)
        return json_path

    # ── Records ─────────────────────────────────────────────────────────────

    def _require_json(self) -> Path:
        if self._json_file is None:
            raise FeedNotPulledError(
                "json_file is None, it needs to be populated with json_pull", feed_name=self.name
            )
        if not self._json_file.is_file():
            raise FeedNotPulledError(f"json_file ({self._json_file}) doesn't exist", feed_name=self.name)
        return self._json_file

    def _load_document(self, path: Path | None = None) -> dict[str, Any]:
        with (path or self._require_json()).open("r", encoding="utf-8") as f:
            return json.load(f)

    def _parse_summary(self, path: Path) -> FeedSummary:
        try:
            return FeedSummary.from_document(self._load_document(path))
        except (KeyError, ValueError) as e:
            raise NvdFeedError(f"malformed feed document {path}: {e}", feed_name=self.name) from e

    def _items(self, doc: dict[str, Any]) -> Iterator[dict[str, Any]]:
        items = doc.get("CVE_Items") or []
        count = self.data_number_of_cves
        if count is None:
            count = len(items)
        yield from items[:count]

    def lookup(self, cve_id: str) -> dict[str, Any] | None:
        """Return the record of one CVE, or ``None`` if the feed lacks it.

        Args:
            cve_id: CVE ID, case-insensitive.

        Raises:
            InvalidIdentifierError: If ``cve_id`` is malformed.
            FeedNotPulledError: If :meth:`json_pull` has not run.
        """
        wanted = normalize_cve_id(cve_id)
        for item in self._items(self._load_document()):
            if record_id(item) == wanted:
                return item
        return None

    def lookup_many(self, cve_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Return the records of several CVEs in a single pass.

        The scan stops as soon as every requested ID has been seen.  Records
        come back in document order, not request order.

        Args:
            cve_ids: CVE IDs, case-insensitive.

        Raises:
            InvalidIdentifierError: If any ID is malformed.
            FeedNotPulledError: If :meth:`json_pull` has not run.
            UnknownIdentifierError: If some IDs are not in the feed; all of
                them are named.
        """
        pending = set(normalize_cve_ids(cve_ids))
        found: list[dict[str, Any]] = []
        if not pending:
            return found
        for item in self._items(self._load_document()):
            rid = record_id(item)
            if rid in pending:
                found.append(item)
                pending.discard(rid)
                if not pending:
                    break
        if pending:
            missing = sorted(pending)
            raise UnknownIdentifierError(
                f"{', '.join(missing)} are unexisting CVEs in this feed",
                missing=missing,
                feed_name=self.name,
            )
        return found

    def available_identifiers(self) -> list[str]:
        """Return every CVE ID of the feed in document order.

        Raises:
            FeedNotPulledError: If :meth:`json_pull` has not run.
        """
        out: list[str] = []
        for item in self._items(self._load_document()):
            rid = record_id(item)
            if rid:
                out.append(rid)
        return out

    # ── Update ──────────────────────────────────────────────────────────────

    def update(self, fresh: "Feed") -> bool:
        """Sync this feed with a freshly discovered one.

        Nothing happens unless ``fresh.updated`` differs.  When it does,
        the links are copied over and only what was already pulled is
        pulled again: the meta file if :attr:`meta` was loaded, the JSON
        document (into the same directory) if :attr:`json_file` was set.

        Args:
            fresh: Feed of the same name from a new discovery.

        Returns:
            ``True`` if the feed was updated.

        Raises:
            TypeError: If ``fresh`` is not a ``Feed``.
        """
        if not isinstance(fresh, Feed):
            raise TypeError(f"{fresh!r} is not a Feed")
        if fresh.updated == self.updated:
            return False

        logger.info("Feed %s changed: %r -> %r", self.name, self.updated, fresh.updated)
        self._descriptor = fresh.descriptor
        if self._meta is not None:
            self.meta_pull()
        if self._json_file is not None:
            self.json_pull(self._json_file.parent)
        return True
