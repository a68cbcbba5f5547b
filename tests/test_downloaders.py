"""Unit tests for nvdfeeds.downloaders — HTTP and file helpers."""

import hashlib
import io
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from nvdfeeds.config import FeedSettings
from nvdfeeds.downloaders import (
    download_file,
    extract_zip_flat,
    fetch_text,
    file_matches_sha256,
    requests_session,
    sha256_file,
    url_filename,
)
from nvdfeeds.exceptions import TransportError

from .fakes import make_response

# ── requests_session ─────────────────────────────────────────────────────────


class TestRequestsSession:
    def test_default_user_agent(self):
        s = requests_session()
        assert s.headers["User-Agent"].startswith("nvdfeeds/")

    def test_custom_user_agent(self):
        s = requests_session(FeedSettings(user_agent="acme-sync/2"))
        assert s.headers["User-Agent"] == "acme-sync/2"

    def test_no_auth(self):
        assert "Authorization" not in requests_session().headers

    def test_pool_sized_for_workers(self):
        s = requests_session(FeedSettings(max_workers=24))
        assert s.get_adapter("https://nvd.nist.gov")._pool_maxsize == 24

    def test_pool_never_below_default(self):
        s = requests_session(FeedSettings(max_workers=2))
        assert s.get_adapter("https://nvd.nist.gov")._pool_maxsize == 10


# ── fetch_text ───────────────────────────────────────────────────────────────


class TestFetchText:
    def test_returns_body(self):
        session = MagicMock()
        session.get.return_value = make_response(b"size:1")
        assert fetch_text(session, "https://x/meta") == "size:1"

    def test_passes_timeout(self):
        session = MagicMock()
        session.get.return_value = make_response(b"")
        fetch_text(session, "https://x/meta", timeout=(1.0, 2.0))
        assert session.get.call_args.kwargs["timeout"] == (1.0, 2.0)

    def test_error_status(self):
        session = MagicMock()
        session.get.return_value = make_response(b"", 500, "Internal Server Error")
        with pytest.raises(TransportError, match="https://x/meta ended with 500 Internal Server Error") as exc:
            fetch_text(session, "https://x/meta")
        assert exc.value.status_code == 500
        assert session.get.call_count == 1

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError, match="https://x/meta failed") as exc:
            fetch_text(session, "https://x/meta")
        assert exc.value.status_code is None
        assert isinstance(exc.value.__cause__, requests.ConnectionError)


# ── download_file ────────────────────────────────────────────────────────────


class TestDownloadFile:
    def test_writes_body_verbatim(self, tmp_path):
        session = MagicMock()
        resp = make_response(b"")
        resp.iter_content.return_value = [b"PK\x03", b"", b"\x04rest"]
        session.get.return_value = resp
        out = download_file(session, "https://x/a.zip", tmp_path / "sub" / "a.zip")
        assert out.read_bytes() == b"PK\x03\x04rest"
        assert session.get.call_args.kwargs["stream"] is True

    def test_no_part_file_left(self, tmp_path):
        session = MagicMock()
        session.get.return_value = make_response(b"data")
        download_file(session, "https://x/a.zip", tmp_path / "a.zip")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.zip"]

    def test_error_status_writes_nothing(self, tmp_path):
        session = MagicMock()
        session.get.return_value = make_response(b"nope", 403, "Forbidden")
        with pytest.raises(TransportError, match="403 Forbidden"):
            download_file(session, "https://x/a.zip", tmp_path / "a.zip")
        assert list(tmp_path.iterdir()) == []

    def test_timeout_writes_nothing(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("read timed out")
        with pytest.raises(TransportError, match="failed"):
            download_file(session, "https://x/a.zip", tmp_path / "a.zip")
        assert list(tmp_path.iterdir()) == []

    def test_interrupted_stream_removes_part_file(self, tmp_path):
        def broken_stream(chunk_size):
            yield b"PK\x03\x04"
            raise requests.ConnectionError("connection reset")

        session = MagicMock()
        resp = make_response(b"")
        resp.iter_content.side_effect = broken_stream
        session.get.return_value = resp
        with pytest.raises(TransportError, match="connection reset"):
            download_file(session, "https://x/a.zip", tmp_path / "a.zip")
        assert list(tmp_path.iterdir()) == []


# ── url_filename ─────────────────────────────────────────────────────────────


class TestUrlFilename:
    def test_trailing_segment(self):
        url = "https://nvd.nist.gov/feeds/json/cve/1.1/nvdcve-1.1-2010.json.zip"
        assert url_filename(url) == "nvdcve-1.1-2010.json.zip"

    def test_ignores_query(self):
        assert url_filename("https://x/y/file.meta?v=2") == "file.meta"

    def test_no_path(self):
        with pytest.raises(ValueError):
            url_filename("https://x")


# ── checksums ────────────────────────────────────────────────────────────────


class TestChecksum:
    def test_sha256_file_uppercase(self, tmp_path):
        p = tmp_path / "f"
        p.write_bytes(b"hello")
        assert sha256_file(p) == hashlib.sha256(b"hello").hexdigest().upper()

    def test_matches_case_insensitive(self, tmp_path):
        p = tmp_path / "f"
        p.write_bytes(b"hello")
        assert file_matches_sha256(p, hashlib.sha256(b"hello").hexdigest().lower())

    def test_missing_file(self, tmp_path):
        assert not file_matches_sha256(tmp_path / "nope", "0" * 64)

    def test_mismatch(self, tmp_path):
        p = tmp_path / "f"
        p.write_bytes(b"hello")
        assert not file_matches_sha256(p, "0" * 64)


# ── extract_zip_flat ─────────────────────────────────────────────────────────


class TestExtractZipFlat:
    def _make_zip(self, path: Path, files: dict[str, bytes]) -> Path:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("folder/", b"")
            for name, content in files.items():
                zf.writestr(name, content)
        path.write_bytes(buf.getvalue())
        return path

    def test_discards_directories(self, tmp_path):
        z = self._make_zip(tmp_path / "a.zip", {"folder/deep/x.json": b"{}", "y.txt": b"y"})
        out = extract_zip_flat(z, tmp_path / "out")
        assert [p.name for p in out] == ["x.json", "y.txt"]
        assert (tmp_path / "out" / "x.json").read_bytes() == b"{}"
        assert not (tmp_path / "out" / "folder").exists()

    def test_overwrites_existing(self, tmp_path):
        (tmp_path / "x.json").write_bytes(b"old")
        z = self._make_zip(tmp_path / "a.zip", {"x.json": b"new"})
        extract_zip_flat(z, tmp_path)
        assert (tmp_path / "x.json").read_bytes() == b"new"
