"""Shared fixtures."""

import pytest

from nvdfeeds.config import FeedSettings

from .fakes import FakeNvd


@pytest.fixture
def settings(tmp_path):
    return FeedSettings(storage_location=tmp_path / "store")


@pytest.fixture
def nvd():
    return FakeNvd()


@pytest.fixture
def populated_nvd(nvd):
    """A site resembling the real one: rolling feeds first, then years."""
    nvd.add_feed("CVE-Modified", ["CVE-2017-0001", "CVE-2016-0002"])
    nvd.add_feed("CVE-Recent", ["CVE-2017-0003"])
    nvd.add_feed("CVE-2017", ["CVE-2017-0001", "CVE-2017-0003", "CVE-2017-10000"])
    nvd.add_feed("CVE-2016", ["CVE-2016-0001", "CVE-2016-0002"])
    nvd.add_feed("CVE-2010", ["CVE-2010-0001", "CVE-2010-0002", "CVE-2010-0003", "CVE-2010-4000"])
    nvd.add_feed("CVE-2002", ["CVE-1999-0001", "CVE-1999-0002", "CVE-2000-0005", "CVE-2002-0001"])
    return nvd
