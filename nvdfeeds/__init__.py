"""nvdfeeds — sync, verify and query the NVD JSON vulnerability feeds.

This package discovers the feeds published by the NVD, tracks their meta
files, downloads and checksums their archives, and looks up CVE records
by ID.
"""

from .catalog import Catalog
from .config import FeedSettings, load_settings
from .feed import ArchiveKind, Feed, FeedDescriptor, FeedSummary
from .meta import MetadataRecord, MetaFile
from .refresh import RefreshCoordinator
from .resolver import IdentifierResolver
from .scraper import NvdFeedPageSupplier

__version__ = "0.1.0"

__all__ = [
    "ArchiveKind",
    "Catalog",
    "Feed",
    "FeedDescriptor",
    "FeedSettings",
    "FeedSummary",
    "IdentifierResolver",
    "MetaFile",
    "MetadataRecord",
    "NvdFeedPageSupplier",
    "RefreshCoordinator",
    "load_settings",
]
