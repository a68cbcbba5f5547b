"""Default catalog supplier: the NVD data-feeds page.

The page lists every JSON feed as three table rows sharing a number in
their ``data-testid``, which ends in ``-<num>-meta``, ``-<num>-gz`` or
``-<num>-zip``.  The meta row carries the feed name, its last update and the
meta file link; the other two carry the archive links.
"""

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .config import FeedSettings
from .downloaders import fetch_text, requests_session
from .exceptions import CatalogError, TransportError
from .feed import FeedDescriptor

logger = logging.getLogger(__name__)

ROW_SELECTOR = "#vuln-feed-table table.xml-feed-table tr[data-testid]"


def _is_retryable(exc: BaseException) -> bool:
    """Connection failures, timeouts and 5xx responses are worth another try."""
    if not isinstance(exc, TransportError):
        return False
    return exc.status_code is None or exc.status_code >= 500


@retry(
    retry=retry_if_exception(_is_retryable),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    reraise=True,
)
def get_page(session: requests.Session, url: str, timeout: tuple[float, float]) -> str:
    """Fetch the feeds page with retry logic.

    Raises:
        TransportError: On a 4xx response, or once the retries for
            connection failures and 5xx responses are exhausted.
    """
    return fetch_text(session, url, timeout=timeout)


def _href(cell, base_url: str) -> str:
    a = cell.find("a", href=True) if cell is not None else None
    if a is None:
        raise CatalogError("feed row without a link")
    return urljoin(base_url + "/", a["href"])


def parse_feeds_page(html: str, base_url: str) -> list[FeedDescriptor]:
    """Extract feed descriptors from the feeds page HTML.

    Args:
        html: Page source.
        base_url: Site root the relative links are joined onto.

    Returns:
        Descriptors in page order.

    Raises:
        CatalogError: If a gz/zip row appears without its meta row.
    """
    soup = BeautifulSoup(html, "html.parser")
    pending: dict[str, dict[str, str]] = {}
    out: list[FeedDescriptor] = []

    for tr in soup.select(ROW_SELECTOR):
        testid = tr.get("data-testid", "")
        # data-testid ends with "-<num>-<meta|gz|zip>"
        parts = testid.rsplit("-", 2)
        if len(parts) != 3:
            continue
        _, num, kind = parts
        cells = tr.find_all("td")
        if kind == "meta":
            if len(cells) < 3:
                raise CatalogError(f"meta row {testid} has {len(cells)} cells, expected 3")
            pending[num] = {
                "name": cells[0].get_text(strip=True),
                "updated": cells[1].get_text(strip=True),
                "meta_url": _href(cells[2], base_url),
            }
        elif kind in ("gz", "zip"):
            entry = pending.get(num)
            if entry is None:
                raise CatalogError(f"{kind} row {testid} appears before its meta row")
            entry[f"{kind}_url"] = _href(tr.find("td"), base_url)
            if kind == "zip":
                if "gz_url" not in entry:
                    raise CatalogError(f"feed {entry['name']} has no gz row")
                out.append(FeedDescriptor(**entry))
                del pending[num]

    return out


class NvdFeedPageSupplier:
    """Callable returning the feeds currently listed on the NVD site."""

    def __init__(self, settings: FeedSettings | None = None, session: requests.Session | None = None):
        self.settings = settings or FeedSettings()
        self.session = session or requests_session(self.settings)

    def __call__(self) -> list[FeedDescriptor]:
        html = get_page(self.session, self.settings.feeds_page_url, self.settings.http_timeout)
        descriptors = parse_feeds_page(html, self.settings.base_url)
        logger.info("Found %d feeds on %s", len(descriptors), self.settings.feeds_page_url)
        return descriptors
