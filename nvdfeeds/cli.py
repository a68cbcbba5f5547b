"""Command-line entry point.

::

    nvdfeeds feeds
    nvdfeeds meta CVE-2017
    nvdfeeds pull CVE-2016 CVE-2017 --dest /srv/nvd --parallel
    nvdfeeds cve CVE-2014-0160 cve-2009-3555
    nvdfeeds cves > all_ids.txt
"""

import argparse
import json
import logging
from collections.abc import Sequence
from pathlib import Path

import yaml
from pydantic import ValidationError

from .catalog import Catalog
from .config import FeedSettings, find_settings, load_settings
from .downloaders import requests_session
from .exceptions import NvdFeedError
from .parallel import pull_feeds_parallel
from .resolver import IdentifierResolver
from .scraper import NvdFeedPageSupplier


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nvdfeeds", description="Sync and query NVD JSON feeds")
    p.add_argument("--config", type=Path, default=None, help="YAML/JSON settings file")
    p.add_argument("--dest", type=Path, default=None, help="Directory for archives and JSON files")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("feeds", help="List available feeds")

    meta = sub.add_parser("meta", help="Show the meta file of feeds")
    meta.add_argument("names", nargs="+")

    pull = sub.add_parser("pull", help="Download and verify feeds")
    pull.add_argument("names", nargs="*", help="Feed names (default: all)")
    pull.add_argument("--parallel", action="store_true", help="Pull feeds concurrently")
    pull.add_argument("--timeout", type=float, default=None, help="Seconds for a parallel batch")

    cve = sub.add_parser("cve", help="Print CVE records as JSON")
    cve.add_argument("ids", nargs="+")

    sub.add_parser("cves", help="List every CVE ID of the yearly feeds")
    return p


def _settings(args: argparse.Namespace) -> FeedSettings:
    settings = load_settings(args.config or find_settings())
    if args.dest is not None:
        settings = settings.model_copy(update={"storage_location": args.dest})
    return settings


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _cmd_feeds(catalog: Catalog) -> int:
    for feed in catalog.feeds():
        print(f"{feed.name:<14} {feed.updated}")
    return 0


def _cmd_meta(catalog: Catalog, names: list[str]) -> int:
    for feed in catalog.get_many(names):
        m = feed.meta_pull()
        print(f"{feed.name}:")
        print(f"  lastModifiedDate: {m.last_modified_date}")
        print(f"  size: {m.size}  zipSize: {m.zip_size}  gzSize: {m.gz_size}")
        print(f"  sha256: {m.sha256}")
    return 0


def _cmd_pull(catalog: Catalog, names: list[str], parallel: bool, timeout: float | None) -> int:
    feeds = catalog.get_many(names) if names else catalog.feeds()
    if parallel:
        results = pull_feeds_parallel(feeds, timeout=timeout)
        for name, path in results.files.items():
            print(f"  ✅ {name}: {path}")
        for name, err in results.errors.items():
            print(f"  ❌ {name}: {err}")
        return 0 if results.ok else 1

    for feed in feeds:
        path = feed.json_pull()
        print(f"  ✅ {feed.name}: {path} ({feed.data_number_of_cves} CVEs, {feed.data_timestamp})")
    return 0


def _cmd_cve(resolver: IdentifierResolver, ids: list[str]) -> int:
    if len(ids) == 1:
        record = resolver.resolve_one(ids[0])
        if record is None:
            print(f"{ids[0]} not found")
            return 1
        print(json.dumps(record, indent=2))
        return 0
    print(json.dumps(resolver.resolve_many(ids), indent=2))
    return 0


def _cmd_cves(resolver: IdentifierResolver) -> int:
    for cve_id in resolver.all_identifiers():
        print(cve_id)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = _settings(args)
    except (OSError, ValidationError, yaml.YAMLError) as e:
        print(f"Error: invalid settings: {e}")
        return 1

    try:
        catalog = Catalog(NvdFeedPageSupplier(settings), settings=settings, session=requests_session(settings))
        catalog.discover()
        resolver = IdentifierResolver(catalog)

        if args.command == "feeds":
            return _cmd_feeds(catalog)
        if args.command == "meta":
            return _cmd_meta(catalog, args.names)
        if args.command == "pull":
            return _cmd_pull(catalog, args.names, args.parallel, args.timeout)
        if args.command == "cve":
            return _cmd_cve(resolver, args.ids)
        if args.command == "cves":
            return _cmd_cves(resolver)
    except NvdFeedError as e:
        print(f"Error: {e}")
        return 1
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
