"""
Run-wide state and the listing controller.

RunState is created once per run and passed to everything that reads or
writes run counters; there is no module-level state. The controller owns
the "check seen-set, then insert" step and performs it under the state lock,
so concurrent page workers can never save the same URL twice or overshoot
the quota.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Set

from loguru import logger

from harvester.contexts.extraction.schema import JobRecord, utc_timestamp

DEFAULT_EXTRACTION_METHOD = "None"


@dataclass
class RunState:
    saved_count: int = 0
    # Claimed by an in-flight page but not persisted yet
    reserved_count: int = 0
    seen_urls: Set[str] = field(default_factory=set)
    pages_processed: int = 0
    extraction_method: str = DEFAULT_EXTRACTION_METHOD
    blocked_details: int = 0
    started_at: float = field(default_factory=time.monotonic)
    stop_requested: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def request_stop(self) -> None:
        self.stop_requested = True

    def summary(self) -> Dict:
        """Run statistics as persisted under the `statistics` key."""
        duration = round(time.monotonic() - self.started_at)
        return {
            "totalJobsScraped": self.saved_count,
            "pagesProcessed": self.pages_processed,
            "extractionMethod": self.extraction_method,
            "blockedDetailPages": self.blocked_details,
            "duration": f"{duration} seconds",
            "timestamp": utc_timestamp(),
        }


class ListingController:
    """
    Turns one page's candidate records into a persisted batch.

    Args:
        state: The run's RunState
        store: RecordStore receiving each batch
        max_jobs: Record quota; 0 means unbounded
    """

    def __init__(self, state: RunState, store, max_jobs: int = 0):
        self.state = state
        self.store = store
        self.max_jobs = max_jobs

    @property
    def quota_reached(self) -> bool:
        return self.max_jobs > 0 and self.state.saved_count >= self.max_jobs

    async def claim(self, jobs: List[JobRecord]) -> List[JobRecord]:
        """
        Truncate to the remaining quota, then drop URLs already seen this run.

        Survivors' URLs enter the seen-set and their count is reserved against
        the quota until `process` settles it. Records without a URL always
        survive the seen-set check.
        """
        async with self.state.lock:
            if self.max_jobs > 0:
                room = self.max_jobs - self.state.saved_count - self.state.reserved_count
                jobs = jobs[:max(0, room)]

            fresh = []
            for job in jobs:
                if job.url:
                    if job.url in self.state.seen_urls:
                        logger.debug(f"Skipping duplicate job: {job.title} ({job.url})")
                        continue
                    self.state.seen_urls.add(job.url)
                fresh.append(job)

            self.state.reserved_count += len(fresh)

        if len(fresh) < len(jobs):
            logger.info(f"Removed {len(jobs) - len(fresh)} duplicate jobs")
        return fresh

    async def process(self, jobs: List[JobRecord], enricher) -> int:
        """
        Claim, enrich and persist one page's records.

        Returns:
            Number of records saved from this batch
        """
        fresh = await self.claim(jobs)
        if not fresh:
            return 0

        saved = 0
        blocked = 0
        try:
            enriched, blocked = await enricher.enrich_jobs(fresh, stop=lambda: self.state.stop_requested)
            await asyncio.to_thread(self.store.push_records, [job.to_dict() for job in enriched])
            saved = len(enriched)
        finally:
            async with self.state.lock:
                self.state.reserved_count -= len(fresh)
                self.state.saved_count += saved
                self.state.blocked_details += blocked

        quota = self.max_jobs or "unbounded"
        logger.info(f"Saved {saved} jobs. Total: {self.state.saved_count} (quota: {quota})")
        if blocked:
            logger.warning(f"{blocked} detail pages were blocked on this batch")
        return saved
