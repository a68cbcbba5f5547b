"""HTTP and file helpers for feed retrieval.

All network and archive I/O is isolated here; ``meta`` and ``feed`` call
these helpers and work with paths and strings.  Nothing in this module
retries: a non-success response or a failed connection is raised to the
caller as ``TransportError``.
"""

import hashlib
import logging
import zipfile
from pathlib import Path
from urllib.parse import urlparse

import requests
from requests.adapters import DEFAULT_POOLSIZE, HTTPAdapter

from .config import FeedSettings
from .exceptions import TransportError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def requests_session(settings: FeedSettings | None = None) -> requests.Session:
    """Create a configured requests session.

    Args:
        settings: Supplies the ``User-Agent`` and the worker count the
            connection pool is sized for. Defaults are used when omitted.

    Returns:
        Configured ``requests.Session``.
    """
    settings = settings or FeedSettings()
    s = requests.Session()
    # One pooled connection per parallel worker.
    adapter = HTTPAdapter(pool_maxsize=max(DEFAULT_POOLSIZE, settings.max_workers))
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers.update(
        {
            "User-Agent": settings.user_agent,
            "Accept": "*/*",
        }
    )
    return s


def _raise_for_status(r: requests.Response, url: str) -> None:
    try:
        r.raise_for_status()
    except requests.HTTPError as e:
        raise TransportError(
            f"{url} ended with {r.status_code} {r.reason}",
            url=url,
            status_code=r.status_code,
        ) from e


def _get(session: requests.Session, url: str, **kwargs) -> requests.Response:
    """``session.get`` with connection and timeout failures as ``TransportError``."""
    try:
        return session.get(url, **kwargs)
    except requests.RequestException as e:
        raise TransportError(f"{url} failed: {e}", url=url) from e


def fetch_text(session: requests.Session, url: str, timeout: tuple[float, float] | None = None) -> str:
    """GET a small text resource.

    Args:
        session: Requests session.
        url: URL to fetch.
        timeout: ``(connect, read)`` timeout.

    Returns:
        Decoded response body.

    Raises:
        TransportError: On a non-2xx response or a connection failure.
    """
    r = _get(session, url, timeout=timeout or FeedSettings().http_timeout)
    _raise_for_status(r, url)
    return r.text


def download_file(
    session: requests.Session,
    url: str,
    destination: Path,
    timeout: tuple[float, float] | None = None,
) -> Path:
    """Stream a URL to ``destination`` verbatim.

    The body goes to a ``.part`` sibling first and is renamed once complete,
    so an interrupted transfer never leaves a truncated file under the final
    name.  The ``.part`` file is removed if the transfer fails.

    Args:
        session: Requests session.
        url: URL to fetch.
        destination: Target file path.
        timeout: ``(connect, read)`` timeout.

    Returns:
        ``destination``.

    Raises:
        TransportError: On a non-2xx response or a connection failure.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    part = destination.with_name(destination.name + ".part")
    with _get(session, url, stream=True, timeout=timeout or FeedSettings().http_timeout) as r:
        _raise_for_status(r, url)
        try:
            with part.open("wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            part.unlink(missing_ok=True)
            raise TransportError(f"{url} failed: {e}", url=url) from e
        except BaseException:
            part.unlink(missing_ok=True)
            raise
    part.replace(destination)
    logger.info("Downloaded %s to %s", url, destination)
    return destination


def url_filename(url: str) -> str:
    """Return the trailing path segment of ``url``.

    ``https://host/feeds/nvdcve-1.1-2010.json.zip`` gives
    ``nvdcve-1.1-2010.json.zip``.
    """
    name = urlparse(url).path.rstrip("/").split("/")[-1]
    if not name:
        raise ValueError(f"cannot derive a file name from {url!r}")
    return name


def sha256_file(path: Path) -> str:
    """Return the upper-case hex SHA-256 of a file."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(block)
    return h.hexdigest().upper()


def file_matches_sha256(path: Path, expected: str) -> bool:
    """Check whether ``path`` exists and hashes to ``expected``.

    The comparison is case-insensitive.
    """
    if not path.is_file():
        return False
    return sha256_file(path).casefold() == expected.casefold()


def extract_zip_flat(zip_path: Path, destination: Path) -> list[Path]:
    """Extract every file of a ZIP into ``destination``, ignoring folders.

    Archive-internal directories are discarded: ``a/b/c.json`` lands at
    ``destination / "c.json"``.

    Args:
        zip_path: Archive to extract.
        destination: Target directory.

    Returns:
        Paths of the extracted files in archive order.
    """
    destination.mkdir(parents=True, exist_ok=True)
    out: list[Path] = []
    with zipfile.ZipFile(zip_path) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            name = Path(info.filename).name
            if not name:
                continue
            target = destination / name
            with zf.open(info) as src, target.open("wb") as dst:
                for block in iter(lambda: src.read(CHUNK_SIZE), b""):
                    dst.write(block)
            out.append(target)
    return out
