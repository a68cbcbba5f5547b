"""Bring feeds a caller already holds up to date with the NVD site."""

import logging
from collections.abc import Iterable

from .catalog import Catalog
from .feed import Feed

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Re-discovers the catalog and updates existing ``Feed`` objects in place.

    The caller's objects keep their identity and whatever they had already
    pulled; only what was pulled before is pulled again.

    Example::

        f2015, f2017 = catalog.get_many(["CVE-2015", "CVE-2017"])
        RefreshCoordinator(catalog).refresh_many([f2015, f2017])  # [False, True]
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def _update(self, feed: Feed) -> bool | None:
        fresh = self.catalog.get(feed.name)
        if fresh is None:
            logger.warning("%s not found in the refreshed catalog", feed.name)
            return None
        return feed.update(fresh)

    def refresh(self, feed: Feed) -> bool | None:
        """Re-discover, then update one feed.

        Returns:
            ``True`` if the feed changed, ``False`` if not, ``None`` if its
            name is no longer listed.
        """
        if not isinstance(feed, Feed):
            raise TypeError(f"the provided argument {feed!r} is not a Feed")
        self.catalog.discover()
        return self._update(feed)

    def refresh_many(self, feeds: Iterable[Feed]) -> list[bool | None]:
        """Re-discover once, then update every feed.

        Returns:
            One result per feed, as for :meth:`refresh`.
        """
        feeds = list(feeds)
        for feed in feeds:
            if not isinstance(feed, Feed):
                raise TypeError(f"the provided argument {feed!r} is not a Feed")
        self.catalog.discover()
        return [self._update(f) for f in feeds]
