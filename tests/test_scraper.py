"""Unit tests for nvdfeeds.scraper — feeds page parsing."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from nvdfeeds.config import FeedSettings
from nvdfeeds.exceptions import CatalogError, TransportError
from nvdfeeds.scraper import NvdFeedPageSupplier, get_page, parse_feeds_page

from .fakes import make_response

BASE = "https://nvd.nist.gov"


def _rows(num: int, name: str, updated: str, slug: str) -> str:
    prefix = f"vuln-json-feed-row-{num}"
    return f"""
      <tr data-testid="{prefix}-meta">
        <td rowspan="3">{name}</td>
        <td rowspan="3">{updated}</td>
        <td><a href="/feeds/json/cve/1.1/nvdcve-1.1-{slug}.meta">META</a></td>
      </tr>
      <tr data-testid="{prefix}-gz">
        <td><a href="/feeds/json/cve/1.1/nvdcve-1.1-{slug}.json.gz">GZ</a></td>
        <td>3.4 MB</td>
      </tr>
      <tr data-testid="{prefix}-zip">
        <td><a href="/feeds/json/cve/1.1/nvdcve-1.1-{slug}.json.zip">ZIP</a></td>
        <td>3.4 MB</td>
      </tr>"""


def _page(body: str) -> str:
    return f"""
    <html><body>
      <div id="other"><table class="xml-feed-table">
        <tr data-testid="ignored-row-9-meta"><td>x</td><td>y</td><td><a href="/x">x</a></td></tr>
      </table></div>
      <div id="vuln-feed-table">
        <table class="xml-feed-table">
          <thead><tr><th>Feed</th><th>Updated</th><th>Download</th></tr></thead>
          <tbody>{body}</tbody>
        </table>
      </div>
    </body></html>"""


PAGE = _page(
    _rows(0, "CVE-Modified", "10/27/2017 3:01:53 AM -04:00", "modified")
    + _rows(1, "CVE-Recent", "10/27/2017 3:01:50 AM -04:00", "recent")
    + _rows(2, "CVE-2017", "10/27/2017 3:17:23 AM -04:00", "2017")
)


# ── parse_feeds_page ─────────────────────────────────────────────────────────


class TestParseFeedsPage:
    def test_descriptors_in_page_order(self):
        feeds = parse_feeds_page(PAGE, BASE)
        assert [f.name for f in feeds] == ["CVE-Modified", "CVE-Recent", "CVE-2017"]

    def test_fields(self):
        f2017 = parse_feeds_page(PAGE, BASE)[2]
        assert f2017.updated == "10/27/2017 3:17:23 AM -04:00"
        assert f2017.meta_url == "https://nvd.nist.gov/feeds/json/cve/1.1/nvdcve-1.1-2017.meta"
        assert f2017.gz_url == "https://nvd.nist.gov/feeds/json/cve/1.1/nvdcve-1.1-2017.json.gz"
        assert f2017.zip_url == "https://nvd.nist.gov/feeds/json/cve/1.1/nvdcve-1.1-2017.json.zip"

    def test_absolute_links_kept(self):
        html = PAGE.replace('href="/feeds', 'href="https://mirror.example/feeds')
        f2017 = parse_feeds_page(html, BASE)[2]
        assert f2017.zip_url.startswith("https://mirror.example/")

    def test_rows_outside_table_ignored(self):
        assert "x" not in [f.name for f in parse_feeds_page(PAGE, BASE)]

    def test_empty_page(self):
        assert parse_feeds_page("<html></html>", BASE) == []

    def test_orphan_zip_row(self):
        html = _page(
            '<tr data-testid="vuln-json-feed-row-4-zip"><td><a href="/a.json.zip">ZIP</a></td></tr>'
        )
        with pytest.raises(CatalogError, match="before its meta row"):
            parse_feeds_page(html, BASE)

    def test_missing_gz_row(self):
        rows = _rows(5, "CVE-2010", "x", "2010")
        rows = rows.replace('data-testid="vuln-json-feed-row-5-gz"', 'data-testid="something"')
        with pytest.raises(CatalogError, match="no gz row"):
            parse_feeds_page(_page(rows), BASE)

    def test_short_meta_row(self):
        html = _page('<tr data-testid="vuln-json-feed-row-6-meta"><td>CVE-2010</td></tr>')
        with pytest.raises(CatalogError, match="cells"):
            parse_feeds_page(html, BASE)


# ── NvdFeedPageSupplier ──────────────────────────────────────────────────────


class TestNvdFeedPageSupplier:
    def test_fetches_configured_page(self):
        session = MagicMock()
        session.get.return_value = make_response(PAGE.encode())
        settings = FeedSettings(feeds_page_url="https://mirror.example/feeds", base_url="https://mirror.example/")
        feeds = NvdFeedPageSupplier(settings, session=session)()
        assert session.get.call_args.args[0] == "https://mirror.example/feeds"
        assert feeds[0].meta_url == "https://mirror.example/feeds/json/cve/1.1/nvdcve-1.1-modified.meta"

    @patch.object(get_page.retry, "sleep", lambda *_: None)
    def test_retries_then_succeeds(self):
        session = MagicMock()
        session.get.side_effect = [
            make_response(b"", 503, "Service Unavailable"),
            make_response(PAGE.encode()),
        ]
        feeds = NvdFeedPageSupplier(session=session)()
        assert len(feeds) == 3
        assert session.get.call_count == 2

    @patch.object(get_page.retry, "sleep", lambda *_: None)
    def test_connection_error_retried(self):
        session = MagicMock()
        session.get.side_effect = [requests.ConnectionError("refused"), make_response(PAGE.encode())]
        assert len(NvdFeedPageSupplier(session=session)()) == 3
        assert session.get.call_count == 2

    @patch.object(get_page.retry, "sleep", lambda *_: None)
    def test_client_error_not_retried(self):
        session = MagicMock()
        session.get.return_value = make_response(b"", 404, "Not Found")
        with pytest.raises(TransportError, match="ended with 404 Not Found") as exc:
            NvdFeedPageSupplier(session=session)()
        assert exc.value.status_code == 404
        assert session.get.call_count == 1

    @patch.object(get_page.retry, "sleep", lambda *_: None)
    def test_server_error_gives_up(self):
        session = MagicMock()
        session.get.return_value = make_response(b"", 502, "Bad Gateway")
        with pytest.raises(TransportError, match="502 Bad Gateway"):
            NvdFeedPageSupplier(session=session)()
        assert session.get.call_count == 5
