"""
Minimal host crawler: a de-duplicating request queue and a fixed pool of
page workers, each owning its own browser session.
"""

import asyncio
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

from loguru import logger

from harvester.contexts.scraping.errors import SessionSetupError


@dataclass(frozen=True)
class CrawlRequest:
    url: str
    unique_key: str = ""
    # None for the start URL; the page number is then parsed from the URL
    page_number: Optional[int] = None

    @property
    def key(self) -> str:
        return self.unique_key or self.url


def compute_max_requests(max_jobs: int, page_size: int = 20, cap: int = 200) -> int:
    """Upper bound on page requests for one run."""
    if max_jobs == 0:
        return cap
    return min(cap, math.ceil(max_jobs / page_size) + 5)


class RequestQueue:
    """
    FIFO of CrawlRequests.

    A request whose unique key was already added is ignored, as is any request
    beyond `max_requests` accepted in total.
    """

    def __init__(self, max_requests: Optional[int] = None):
        self.max_requests = max_requests
        self._queue: asyncio.Queue = asyncio.Queue()
        self._keys: Set[str] = set()
        self.handled: List[CrawlRequest] = []

    @property
    def accepted_count(self) -> int:
        return len(self._keys)

    def add(self, request: CrawlRequest) -> bool:
        """Returns False when the request was a duplicate or over the cap."""
        if request.key in self._keys:
            logger.debug(f"Request already queued: {request.key}")
            return False
        if self.max_requests is not None and len(self._keys) >= self.max_requests:
            logger.warning(f"Request cap of {self.max_requests} reached, not queueing {request.url}")
            return False
        self._keys.add(request.key)
        self._queue.put_nowait(request)
        return True

    async def get(self) -> CrawlRequest:
        return await self._queue.get()

    def task_done(self, request: CrawlRequest) -> None:
        self.handled.append(request)
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    def drain(self) -> int:
        """Drop everything still waiting. Returns how many requests were dropped."""
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        return dropped


class Crawler:
    """
    Runs `max_concurrency` workers over a RequestQueue.

    Each worker lazily opens its own session via `session_factory` and builds
    its page handler with `processor_factory(session)`. Errors from a single
    page are logged and the worker moves on; a SessionSetupError stops the
    whole crawl and is re-raised from `run`.

    Args:
        queue: RequestQueue shared by all workers
        session_factory: async callable returning a new BrowserSession
        processor_factory: callable(session) -> object with `async process(request)`
        max_concurrency: Number of workers
        should_stop: Checked before each request; True drains the queue
    """

    def __init__(
        self,
        queue: RequestQueue,
        session_factory: Callable[[], Awaitable],
        processor_factory: Callable,
        max_concurrency: int = 3,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        self.queue = queue
        self.session_factory = session_factory
        self.processor_factory = processor_factory
        self.max_concurrency = max(1, max_concurrency)
        self.should_stop = should_stop or (lambda: False)
        self.failed: List[CrawlRequest] = []

    async def _worker(self, index: int) -> None:
        session = None
        processor = None
        try:
            while True:
                request = await self.queue.get()
                try:
                    if self.should_stop():
                        dropped = self.queue.drain()
                        logger.info(f"Stopping crawl, skipped {request.url} and {dropped} queued pages")
                        continue

                    if session is None:
                        session = await self.session_factory()
                        processor = self.processor_factory(session)
                        logger.debug(f"Worker {index} opened a browser session")

                    await processor.process(request)
                except SessionSetupError:
                    raise
                except Exception as e:
                    self.failed.append(request)
                    logger.error(f"Request failed: {request.url} - {e}")
                finally:
                    self.queue.task_done(request)
        finally:
            if session is not None:
                await session.close()

    async def run(self, start_requests: List[CrawlRequest]) -> None:
        for request in start_requests:
            self.queue.add(request)

        workers = [asyncio.create_task(self._worker(i)) for i in range(self.max_concurrency)]
        joined = asyncio.create_task(self.queue.join())
        try:
            # A worker only finishes early when it raised
            done, _ = await asyncio.wait([joined, *workers], return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is not joined and task.exception() is not None:
                    raise task.exception()
        finally:
            joined.cancel()
            for worker in workers:
                worker.cancel()
            await asyncio.gather(joined, *workers, return_exceptions=True)

        logger.info(f"Crawl finished: {len(self.queue.handled)} requests handled, {len(self.failed)} failed")
