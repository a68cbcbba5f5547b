"""The set of feeds currently published, keyed by name."""

import logging
from collections.abc import Callable, Iterable

import requests

from .config import FeedSettings
from .downloaders import requests_session
from .exceptions import CatalogError, NotDiscoveredError, UnknownFeedError
from .feed import Feed, FeedDescriptor
from .identifiers import normalize_feed_name

logger = logging.getLogger(__name__)

CatalogSupplier = Callable[[], Iterable[FeedDescriptor]]


class Catalog:
    """Feeds discovered from a catalog supplier.

    Nothing can be queried until :meth:`discover` has run.  Each call to
    :meth:`discover` builds brand new ``Feed`` objects; callers holding on
    to older ones can sync them with ``RefreshCoordinator``.

    Example::

        catalog = Catalog(NvdFeedPageSupplier(settings), settings=settings)
        catalog.discover()
        catalog.names()          # ['CVE-Modified', 'CVE-Recent', 'CVE-2017', ...]
        f2010 = catalog.get("CVE-2010")
        f2005, f2002 = catalog.get_many(["CVE-2005", "CVE-2002"])

    Attributes:
        supplier: Callable returning the current feed descriptors.
        settings: Handed to every ``Feed`` created here.
        session: Shared by every ``Feed`` created here.
    """

    def __init__(
        self,
        supplier: CatalogSupplier,
        *,
        settings: FeedSettings | None = None,
        session: requests.Session | None = None,
    ):
        self.supplier = supplier
        self.settings = settings or FeedSettings()
        self.session = session or requests_session(self.settings)
        self._feeds: list[Feed] | None = None

    @property
    def discovered(self) -> bool:
        return self._feeds is not None

    def discover(self) -> int:
        """Replace the feed list with what the supplier currently reports.

        Returns:
            Number of feeds discovered.

        Raises:
            CatalogError: If the supplier reports the same name twice.
        """
        feeds: list[Feed] = []
        seen: set[str] = set()
        for descriptor in self.supplier():
            if descriptor.name in seen:
                raise CatalogError(f"feed {descriptor.name} listed twice")
            seen.add(descriptor.name)
            feeds.append(Feed.from_descriptor(descriptor, session=self.session, settings=self.settings))
        self._feeds = feeds
        logger.info("Discovered %d feeds", len(feeds))
        return len(feeds)

    def _require_feeds(self, method: str) -> list[Feed]:
        if self._feeds is None:
            raise NotDiscoveredError(f"call discover first before using {method}")
        return self._feeds

    def feeds(self) -> list[Feed]:
        """Return every discovered feed in discovery order."""
        return list(self._require_feeds("feeds"))

    def names(self) -> list[str]:
        """Return the name of every discovered feed in discovery order."""
        return [f.name for f in self._require_feeds("names")]

    def get(self, name: str) -> Feed | None:
        """Return the feed called ``name``, or ``None``.

        ``cve-2010`` and ``CVE-2010`` name the same feed.
        """
        feeds = self._require_feeds("get")
        if not isinstance(name, str):
            raise TypeError(f"the provided argument ({name!r}) is not a String")
        wanted = normalize_feed_name(name)
        for feed in feeds:
            if feed.name == wanted:
                return feed
        return None

    def get_many(self, names: Iterable[str]) -> list[Feed]:
        """Return the feeds called ``names`` in discovery order.

        Raises:
            TypeError: If a name is not a string.
            UnknownFeedError: If some names were not discovered; all of them
                are named.
        """
        feeds = self._require_feeds("get_many")
        if isinstance(names, str):
            raise TypeError(f"expected a collection of feed names, got {names!r}")
        names = list(names)
        if not all(isinstance(n, str) for n in names):
            raise TypeError("one of the provided arguments is not a String")

        pending = {normalize_feed_name(n) for n in names}
        matched: list[Feed] = []
        for feed in feeds:
            if not pending:
                break
            if feed.name in pending:
                matched.append(feed)
                pending.discard(feed.name)
        if pending:
            missing = sorted(pending)
            raise UnknownFeedError(f"{', '.join(missing)} are unexisting feeds", missing=missing)
        return matched

    def __len__(self) -> int:
        return len(self._feeds or [])

    def __iter__(self):
        return iter(self.feeds())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.discovered and self.get(name) is not None
