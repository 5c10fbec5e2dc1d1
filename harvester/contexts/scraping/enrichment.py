"""
Detail-page enrichment.

For each listing record, fetch its detail page, classify the response and
pull out the full description plus a few secondary fields. The fetch
protocol, in order:

1. plain HTTP with the browser session's cookies and user agent
2. on transport failure only, the browser context's request API
3. classification: blocked status or challenge title -> BLOCKED,
   other non-200 or not-found page -> NOT_FOUND
4. description: primary region, then embedded JobPosting data, then the
   broad selector cascade (and company/about blocks), then a real browser
   render of the detail URL re-running the selector tiers
5. secondary fields fill gaps only

Blocked/not-found/empty outcomes are returned as values. `fetch_detail`
never raises.
"""

import asyncio
import re
from typing import Callable, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup
from loguru import logger
from tqdm import tqdm

from harvester.contexts.extraction import selectors as sel
from harvester.contexts.extraction.markup import first_match
from harvester.contexts.extraction.normalize import extract_clean_section
from harvester.contexts.extraction.schema import (
    DetailFetchResult,
    DetailOutcome,
    JobRecord,
)
from harvester.contexts.extraction.structured import find_posting_description
from harvester.contexts.scraping.challenge import BODY_SAMPLE_LENGTH, is_challenge, is_not_found
from harvester.contexts.scraping.requests import (
    FetchResponse,
    build_detail_headers,
    classify_http_status,
    fast_fetch,
)
from harvester.utils.text_processing import clean_text

_TRAILING_JOB_ID = re.compile(r"-(\d{6,})(?:[/?#]|$)")


def job_id_from_url(url: str) -> Optional[str]:
    """Numeric id at the end of a detail-page slug, e.g. ...-120325500123?src=..."""
    match = _TRAILING_JOB_ID.search(url or "")
    return match.group(1) if match else None


def _short_value(value: str) -> bool:
    return len(value) <= sel.MAX_SECONDARY_FIELD_LENGTH


def _secondary_fields(soup: BeautifulSoup) -> dict:
    tags = ()
    for selector in sel.DETAIL_TAG_SELECTORS:
        values = [clean_text(el.get_text(" ")) for el in soup.select(selector)]
        values = [value for value in dict.fromkeys(values) if value and _short_value(value)]
        if values:
            tags = tuple(values)
            break

    return {
        "experience": first_match(soup, sel.DETAIL_EXPERIENCE_SELECTORS, validator=_short_value),
        "salary": first_match(soup, sel.DETAIL_SALARY_SELECTORS, validator=_short_value),
        "job_type": first_match(soup, sel.DETAIL_JOB_TYPE_SELECTORS, validator=_short_value),
        "tags": tags or None,
    }


class DetailEnricher:
    """
    Fetches detail pages through one browser session.

    Holds no per-record state; many `fetch_detail` calls may run concurrently.
    Browser renders (the last description tier) are bounded separately by
    `detail.max_concurrent_renders`.
    """

    def __init__(self, session, fetch_config):
        self.session = session
        self.fetch_config = fetch_config
        self.config = fetch_config.detail
        self._render_slots = asyncio.Semaphore(self.config.max_concurrent_renders)

    async def session_headers(self) -> dict:
        """Detail headers carrying the session's user agent and cookies (read only)."""
        try:
            user_agent = await self.session.user_agent()
            cookie_header = await self.session.cookie_header()
        except Exception as e:
            logger.debug(f"Could not read session identity, using bare headers: {e}")
            return build_detail_headers()
        return build_detail_headers(user_agent, cookie_header)

    async def _download(self, url: str, headers: dict) -> FetchResponse:
        try:
            return await asyncio.to_thread(
                fast_fetch, url, headers, self.config.fast_timeout, self.session.proxy_url
            )
        except requests.RequestException as e:
            logger.debug(f"Fast path failed for {url}, using browser session: {e}")
        return await self.session.request(url, headers, self.config.session_timeout)

    def _primary_description(self, soup: BeautifulSoup) -> Optional[dict]:
        return extract_clean_section(
            soup, sel.PRIMARY_DESCRIPTION_SELECTORS, self.config.min_description_length
        )

    def _broad_description(self, soup: BeautifulSoup) -> Tuple[Optional[dict], str]:
        description = extract_clean_section(
            soup, sel.DESCRIPTION_SELECTORS, self.config.min_description_length
        )
        if description:
            return description, "selectors"

        description = extract_clean_section(soup, sel.ABOUT_SELECTORS, self.config.min_about_length)
        if description:
            return description, "about"

        return None, ""

    def _description_from_document(self, soup: BeautifulSoup) -> Tuple[Optional[dict], str]:
        description = self._primary_description(soup)
        if description:
            return description, "primary"

        description = find_posting_description(soup)
        if description:
            return description, "structured"

        return self._broad_description(soup)

    async def _description_from_render(self, url: str) -> Tuple[Optional[dict], str]:
        async with self._render_slots:
            html = await self.session.render(url, self.config.render_timeout)
        soup = BeautifulSoup(html, "html.parser")
        description = self._primary_description(soup)
        if description:
            return description, "render/primary"
        description, source = self._broad_description(soup)
        return description, f"render/{source}" if description else ""

    async def _fetch_detail(self, url: str, headers: dict) -> DetailFetchResult:
        response = await self._download(url, headers)

        outcome = classify_http_status(response.status)
        if outcome is DetailOutcome.BLOCKED:
            logger.debug(f"Blocked on detail page ({response.status}): {url}")
            return DetailFetchResult.blocked(response.status)

        # A challenge title means blocked whatever the status code
        soup = BeautifulSoup(response.text or "", "html.parser")
        title = soup.title.get_text(" ", strip=True) if soup.title else ""
        if is_challenge(title):
            logger.debug(f"Challenge page served for detail page ({response.status}): {url}")
            return DetailFetchResult.blocked(response.status)

        if outcome is DetailOutcome.NOT_FOUND:
            logger.debug(f"Detail page returned status {response.status}: {url}")
            return DetailFetchResult.not_found(response.status)

        body = soup.body.get_text(" ", strip=True)[:BODY_SAMPLE_LENGTH] if soup.body else ""
        if is_not_found(title, body):
            return DetailFetchResult.not_found(response.status)

        description, source = self._description_from_document(soup)
        if description is None:
            description, source = await self._description_from_render(url)
        if description is None:
            return DetailFetchResult.empty(response.status)

        return DetailFetchResult(
            outcome=DetailOutcome.OK,
            description_html=description["html"],
            description_text=description["text"],
            job_id=job_id_from_url(url),
            status=response.status,
            source=source,
            **_secondary_fields(soup),
        )

    async def fetch_detail(self, url: str, headers: Optional[dict] = None) -> DetailFetchResult:
        """
        Fetch and parse one detail page.

        Args:
            url: Absolute detail-page URL
            headers: Prepared detail headers; read from the session when omitted

        Returns:
            DetailFetchResult. Unexpected errors and timeouts become EMPTY.
        """
        if headers is None:
            headers = await self.session_headers()
        try:
            return await self._fetch_detail(url, headers)
        except Exception as e:
            logger.debug(f"Failed to fetch detail page {url}: {e}")
            return DetailFetchResult.empty()

    async def _enrich_one(self, job: JobRecord, headers: dict) -> DetailFetchResult:
        if not job.url:
            return DetailFetchResult.empty()
        return await self.fetch_detail(job.url, headers)

    async def enrich_jobs(
        self,
        jobs: List[JobRecord],
        stop: Optional[Callable[[], bool]] = None,
    ) -> Tuple[List[JobRecord], int]:
        """
        Enrich a batch of listing records with their detail pages.

        Records are fetched concurrently in chunks of `detail.enrich_batch_size`
        with a short pause between chunks. `stop` is checked before each chunk;
        records after a stop are returned unenriched.

        Returns:
            (records in input order, number of blocked detail pages)
        """
        if not jobs:
            return [], 0

        logger.info(f"Fetching full descriptions for {len(jobs)} jobs...")
        headers = await self.session_headers()
        size = max(1, self.config.enrich_batch_size)

        enriched = list(jobs)
        blocked = 0
        outcomes = {outcome: 0 for outcome in DetailOutcome}

        starts = range(0, len(jobs), size)
        for start in tqdm(starts, desc="Enriching", unit="batch", disable=not self.config.show_progress):
            if stop is not None and stop():
                logger.info(f"Stop requested, {len(jobs) - start} jobs left unenriched")
                break

            batch = jobs[start:start + size]
            results = await asyncio.gather(*[self._enrich_one(job, headers) for job in batch])

            for offset, (job, result) in enumerate(zip(batch, results)):
                enriched[start + offset] = job.merge_enrichment(result)
                outcomes[result.outcome] += 1
                if result.outcome is DetailOutcome.BLOCKED:
                    blocked += 1

            if start + size < len(jobs):
                await asyncio.sleep(self.config.enrich_batch_delay)

        summary = ", ".join(f"{outcome.value}={count}" for outcome, count in outcomes.items())
        logger.success(f"Enrichment finished: {summary}")
        return enriched, blocked
