"""Pull several feeds concurrently.

``Feed.json_pull`` blocks until its transfer and checksum are done.  Each
pull runs in its own worker thread under an ``asyncio`` orchestrator that
bounds the concurrency and applies an overall timeout.  Failures are
collected per feed, never dropped.

Feeds of one ``Catalog`` write to distinct files and keep their own state,
but they share the catalog's ``requests.Session``.  Workers only issue plain
GETs with no cookies or auth changes, and urllib3's connection pool is
thread-safe, so the session is shared on purpose rather than copied per
worker.  ``requests_session`` sizes the pool to
``settings.max_workers`` so no worker waits for a connection.

Usage from synchronous code::

    from nvdfeeds.parallel import pull_feeds_parallel
    results = pull_feeds_parallel(catalog.get_many(["CVE-2016", "CVE-2017"]))
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .feed import Feed


@dataclass
class PullResults:
    """Outcome of a parallel pull.

    Attributes:
        files: Feed name → path of its JSON document.
        errors: Feed name → exception raised while pulling it.
    """

    files: dict[str, Path] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


async def _pull_all(
    feeds: list[Feed],
    destination: Path | str | None,
    max_workers: int,
    timeout: float | None,
) -> PullResults:
    results = PullResults()
    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="nvdfeeds-pull")
    try:
        tasks = {f.name: loop.run_in_executor(executor, f.json_pull, destination) for f in feeds}
        _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
    finally:
        # Threads still running cannot be interrupted; do not wait for them.
        executor.shutdown(wait=False, cancel_futures=True)

    for name, task in tasks.items():
        if task in pending:
            task.cancel()
            results.errors[name] = TimeoutError(f"pull of {name} did not finish within {timeout}s")
        elif task.exception() is not None:
            results.errors[name] = task.exception()
        else:
            results.files[name] = task.result()
    return results


def pull_feeds_parallel(
    feeds: Iterable[Feed],
    destination: Path | str | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> PullResults:
    """Run ``json_pull`` for every feed concurrently.

    Args:
        feeds: Feeds to pull.  Names must be unique.
        destination: Directory for every feed; ``None`` lets each feed use
            its configured storage location.
        max_workers: Concurrent pulls; defaults to the first feed's
            ``settings.max_workers``.
        timeout: Seconds for the whole batch.  Pulls still running when it
            expires are reported as ``TimeoutError`` in ``errors``.

    Returns:
        ``PullResults`` with one entry per feed in ``files`` or ``errors``.

    Example::

        results = pull_feeds_parallel(feeds, timeout=600)
        if not results.ok:
            for name, err in results.errors.items():
                print(f"{name}: {err}")
    """
    feeds = list(feeds)
    if not feeds:
        return PullResults()
    names = [f.name for f in feeds]
    if len(set(names)) != len(names):
        raise ValueError(f"duplicate feeds in {names}")
    workers = max_workers or feeds[0].settings.max_workers
    return asyncio.run(_pull_all(feeds, destination, workers, timeout))
