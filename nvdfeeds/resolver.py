"""Resolve CVE IDs to the feed that holds them and fetch their records.

Yearly feeds are named ``CVE-<year>``.  The first archived feed,
``CVE-2002``, also carries 1999 through 2001, and the rolling feeds
(``CVE-Modified``, ``CVE-Recent``) are never used for resolution.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .catalog import Catalog
from .exceptions import InvalidIdentifierError
from .feed import Feed
from .identifiers import (
    LEGACY_FEED,
    LEGACY_YEARS,
    cve_year,
    is_rolling_feed,
    normalize_cve_id,
    normalize_cve_ids,
)

logger = logging.getLogger(__name__)


class IdentifierResolver:
    """CVE lookups across the feeds of a catalog.

    Feeds are pulled lazily, only when one of their CVEs is requested.

    Attributes:
        catalog: A discovered ``Catalog``.
        destination: Directory passed to ``json_pull``; ``None`` uses the
            catalog's storage location.
    """

    def __init__(self, catalog: Catalog, destination: Path | str | None = None):
        self.catalog = catalog
        self.destination = destination

    def year_feed_names(self) -> list[str]:
        """Names of the discovered feeds, rolling feeds excluded."""
        return [n for n in self.catalog.names() if not is_rolling_feed(n)]

    def feed_name_for(self, cve_id: str) -> str:
        """Return the name of the feed that should hold ``cve_id``.

        Raises:
            InvalidIdentifierError: If the ID is malformed or no feed covers
                its year.
        """
        year = cve_year(cve_id)
        for name in self.year_feed_names():
            if year in name:
                return name
        if year in LEGACY_YEARS and LEGACY_FEED in self.year_feed_names():
            return LEGACY_FEED
        raise InvalidIdentifierError(f"bad CVE year in {cve_id}", identifier=cve_id)

    def _pulled_feed(self, name: str) -> Feed:
        feed = self.catalog.get_many([name])[0]
        feed.json_pull(self.destination)
        return feed

    def resolve_one(self, cve_id: str) -> dict[str, Any] | None:
        """Return the record of one CVE, or ``None`` if its feed lacks it.

        Raises:
            InvalidIdentifierError: If the ID is malformed or its year has
                no feed.
        """
        cve_id = normalize_cve_id(cve_id)
        return self._pulled_feed(self.feed_name_for(cve_id)).lookup(cve_id)

    def group_by_feed(self, cve_ids: Iterable[str]) -> dict[str, list[str]]:
        """Group normalized CVE IDs by the feed that holds them.

        Every ID is validated before any grouping, so a bad ID fails the
        whole request without I/O.
        """
        groups: dict[str, list[str]] = {}
        for cve_id in normalize_cve_ids(cve_ids):
            groups.setdefault(self.feed_name_for(cve_id), []).append(cve_id)
        return groups

    def resolve_many(self, cve_ids: Iterable[str]) -> list[dict[str, Any]]:
        """Return the records of several CVEs, pulling each feed once.

        Records are grouped by feed; order is not guaranteed.

        Raises:
            InvalidIdentifierError: If an ID is malformed or its year has no
                feed.
            UnknownIdentifierError: If a feed lacks some of the IDs.
        """
        groups = self.group_by_feed(cve_ids)
        records: list[dict[str, Any]] = []
        for feed in self.catalog.get_many(groups):
            feed.json_pull(self.destination)
            records.extend(feed.lookup_many(groups[feed.name]))
        return records

    def all_identifiers(self) -> list[str]:
        """Return every CVE ID of every yearly feed, without duplicates.

        This pulls every yearly feed.
        """
        seen: dict[str, None] = {}
        for feed in self.catalog.get_many(self.year_feed_names()):
            feed.json_pull(self.destination)
            seen.update(dict.fromkeys(feed.available_identifiers()))
        logger.info("Collected %d CVE IDs", len(seen))
        return list(seen)
