"""
Per-page control flow for search-results pages.

    LOADING -> CHALLENGE_CHECK -> [CHALLENGE_RETRY] -> EXTRACTING -> DECIDING -> NEXT_PAGE | STOP

Every branch ends in NEXT_PAGE (one request enqueued) or STOP. Navigation is
a fixed two-attempt ladder and challenge handling a fixed three-attempt
ladder, so a page can never loop.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from loguru import logger

from harvester.contexts.extraction.markup import extract_jobs_from_markup
from harvester.contexts.extraction.schema import PageContext
from harvester.contexts.extraction.selectors import NEXT_LINK_SELECTORS
from harvester.contexts.extraction.structured import extract_jobs_from_html
from harvester.contexts.scraping.challenge import page_is_challenge, resolve_challenge
from harvester.contexts.scraping.crawler import CrawlRequest
from harvester.contexts.scraping.errors import NavigationError
from harvester.utils.text_processing import clean_text

PAGE_PARAM = "pageNo"
DEBUG_PAGE_KEY = "DEBUG_PAGE_HTML"

METHOD_MARKUP = "HTML Parsing"
METHOD_STRUCTURED = "JSON-LD"

_PATH_PAGE_SUFFIX = re.compile(r"-(\d+)$")
_SEARCH_PATH = re.compile(r"/([^/]+?)-jobs(?:-in-([^/?]+))?", re.IGNORECASE)


class PageState(str, Enum):
    LOADING = "loading"
    CHALLENGE_CHECK = "challenge_check"
    CHALLENGE_RETRY = "challenge_retry"
    EXTRACTING = "extracting"
    DECIDING = "deciding"
    NEXT_PAGE = "next_page"
    STOP = "stop"


@dataclass
class PageResult:
    state: PageState
    saved: int = 0
    next_request: Optional[CrawlRequest] = None
    reason: str = ""


def parse_page_number(url: str) -> int:
    """Page number from `?pageNo=N` or a trailing `-N` path suffix; 1 when absent or invalid."""
    parts = urlsplit(url)
    params = dict(parse_qsl(parts.query))
    if PAGE_PARAM in params:
        try:
            number = int(params[PAGE_PARAM])
        except ValueError:
            return 1
        return number if number >= 1 else 1

    match = _PATH_PAGE_SUFFIX.search(parts.path.rstrip("/"))
    if match and int(match.group(1)) >= 1:
        return int(match.group(1))
    return 1


def parse_page_context(url: str, run_input=None) -> PageContext:
    """Derive page number, query and location for a fetched results page."""
    query, location = "", ""
    match = _SEARCH_PATH.search(urlsplit(url).path)
    if match:
        query = (match.group(1) or "").replace("-", " ")
        location = _PATH_PAGE_SUFFIX.sub("", match.group(2) or "").replace("-", " ")

    if run_input is not None:
        query = query or (run_input.search_query or "")
        location = location or (run_input.location or "")

    return PageContext(
        url=url,
        page_number=parse_page_number(url),
        search_query=query.strip(),
        search_location=location.strip(),
    )


def compute_page_ceiling(max_jobs: int, page_size: int, unbounded_cap: int) -> int:
    if max_jobs == 0:
        return unbounded_cap
    return math.ceil(max_jobs / page_size)


def build_next_page_url(url: str, next_page: int) -> str:
    """
    Rewrite a results URL to point at `next_page`.

    A `pageNo` query parameter is rewritten in place; otherwise any trailing
    `-N` is stripped from the path and `-{next_page}` appended.
    """
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)

    if any(name == PAGE_PARAM for name, _ in params):
        params = [(name, str(next_page) if name == PAGE_PARAM else value) for name, value in params]
        return urlunsplit(parts._replace(query=urlencode(params)))

    base_path = _PATH_PAGE_SUFFIX.sub("", parts.path.rstrip("/"))
    return urlunsplit(parts._replace(path=f"{base_path}-{next_page}"))


def find_next_link(html: str, base_url: str) -> Optional[str]:
    """Absolute href of an explicit "Next" pagination link, if the page has one."""
    soup = BeautifulSoup(html or "", "html.parser")
    for selector in NEXT_LINK_SELECTORS:
        for anchor in soup.select(selector):
            if clean_text(anchor.get_text(" ")).lower() != "next" and anchor.get("rel") != ["next"]:
                continue
            if "disabled" in " ".join(anchor.get("class", [])).lower():
                continue
            href = (anchor.get("href") or "").strip()
            if not href or href.startswith(("#", "javascript:")):
                continue
            return urljoin(base_url, href)
    return None


class PageProcessor:
    """
    Processes one search-results page for one worker session.

    Args:
        session: The worker's BrowserSession
        controller: ListingController shared by all workers
        enricher: DetailEnricher bound to the same session
        queue: RequestQueue receiving next-page requests
        store: RecordStore (debug dumps)
        run_input: Validated RunInput
        fetch_config: Full fetch config (navigation, challenge, pagination)
    """

    def __init__(self, session, controller, enricher, queue, store, run_input, fetch_config):
        self.session = session
        self.controller = controller
        self.state = controller.state
        self.enricher = enricher
        self.queue = queue
        self.store = store
        self.run_input = run_input
        self.fetch_config = fetch_config

    async def navigate(self, url: str) -> None:
        """
        Two-attempt navigation ladder from `navigation.attempts`.

        Raises:
            NavigationError: When the last attempt fails
        """
        config = self.fetch_config.navigation
        attempts = list(config.attempts)
        for number, attempt in enumerate(attempts, start=1):
            try:
                await self.session.goto(url, wait_until=attempt.wait_until, timeout=attempt.timeout)
                break
            except NavigationError as e:
                logger.warning(f"Navigation attempt {number} failed ({e})")
                if number == len(attempts):
                    raise
                await self.session.wait(config.retry_delay)

        await self.session.wait_for_load_state("networkidle", config.networkidle_timeout)

    async def _save_debug_info(self, html: str) -> None:
        """Best effort: store the rendered page for offline inspection."""
        try:
            title = await self.session.title()
            soup = BeautifulSoup(html, "html.parser")
            logger.warning(
                f"DEBUG page structure: title='{title}', articles={len(soup.find_all('article'))}, "
                f"job-classed={len(soup.select('[class*=job]'))}, tuples={len(soup.select('[class*=tuple]'))}"
            )
            await asyncio.to_thread(self.store.set_value, DEBUG_PAGE_KEY, html, "text/html")
            logger.info(f"Saved full page HTML to {DEBUG_PAGE_KEY} for analysis")
        except Exception as e:
            logger.warning(f"Failed to save debug info: {e}")

    def _extract(self, html: str, context: PageContext):
        jobs = extract_jobs_from_markup(html)
        if jobs:
            context.extraction_method = METHOD_MARKUP
            return jobs

        jobs = extract_jobs_from_html(html)
        if jobs:
            context.extraction_method = METHOD_STRUCTURED
            logger.info(f"JSON-LD extraction successful: {len(jobs)} jobs")
        return jobs

    def _next_request(self, html: str, request: CrawlRequest, context: PageContext, saved: int):
        pagination = self.fetch_config.pagination
        max_jobs = self.controller.max_jobs

        if self.controller.quota_reached:
            logger.info(f"Reached maximum jobs limit: {max_jobs}")
            return None
        if saved == 0:
            logger.info("No new jobs saved on this page; stopping pagination")
            return None

        next_page = context.page_number + 1
        ceiling = compute_page_ceiling(max_jobs, pagination.page_size, pagination.unbounded_page_cap)
        if next_page > ceiling:
            logger.info(f"Reached pagination limit for this run ({ceiling} pages)")
            return None

        next_url = find_next_link(html, self.session.url or request.url)
        if not next_url:
            next_url = build_next_page_url(self.session.url or request.url, next_page)

        return CrawlRequest(url=next_url, unique_key=f"{next_url}-page-{next_page}", page_number=next_page)

    async def process(self, request: CrawlRequest) -> PageResult:
        async with self.state.lock:
            self.state.pages_processed += 1
            page_index = self.state.pages_processed
        logger.info(f"Processing page {page_index}: {request.url}")

        # LOADING
        try:
            await self.navigate(request.url)
        except NavigationError as e:
            logger.error(f"Abandoning page {request.url}: {e}")
            return PageResult(PageState.STOP, reason="navigation failed")

        # CHALLENGE_CHECK / CHALLENGE_RETRY
        if await page_is_challenge(self.session):
            if not await resolve_challenge(self.session, self.fetch_config.challenge):
                return PageResult(PageState.STOP, reason="challenge not resolved")

        await self.session.wait(self.fetch_config.navigation.settle_delay)

        # EXTRACTING
        html = await self.session.content()
        context = parse_page_context(self.session.url or request.url, self.run_input)
        if request.page_number is not None:
            context.page_number = request.page_number
        logger.info(
            f'Search query: "{context.search_query}", Location: "{context.search_location}", '
            f"Page: {context.page_number}"
        )

        jobs = self._extract(html, context)
        if not jobs:
            logger.warning("No jobs found with any extraction method. Saving debug info...")
            await self._save_debug_info(html)
            return PageResult(PageState.STOP, reason="no jobs extracted")

        self.state.extraction_method = context.extraction_method
        saved = await self.controller.process(jobs, self.enricher)

        # DECIDING
        next_request = self._next_request(html, request, context, saved)
        if next_request is None:
            return PageResult(PageState.STOP, saved=saved, reason="pagination finished")

        if not self.queue.add(next_request):
            return PageResult(PageState.STOP, saved=saved, reason="next page not queued")
        logger.info(f"Queued next page: {next_request.url}")
        return PageResult(PageState.NEXT_PAGE, saved=saved, next_request=next_request)
