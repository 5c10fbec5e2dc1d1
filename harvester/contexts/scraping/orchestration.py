"""
Run orchestration: validate input, launch the browser, crawl, write statistics.

Provides functionality to:
- Log execution details to timestamped files
- Wire the run state, listing controller, request queue and page workers
- Persist run statistics under the `statistics` key
"""

import asyncio
import os
import signal
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv
from loguru import logger

from harvester.contexts.scraping.browser import PlaywrightBrowser
from harvester.contexts.scraping.crawler import Crawler, CrawlRequest, RequestQueue, compute_max_requests
from harvester.contexts.scraping.enrichment import DetailEnricher
from harvester.contexts.scraping.inputs import RunInput, build_search_url
from harvester.contexts.scraping.listing import ListingController, RunState
from harvester.contexts.scraping.pagination import PageProcessor
from harvester.contexts.storage import RecordStore, get_record_store
from harvester.utils.config_helpers import load_fetch_config
from harvester.utils.helpers import relative_to_project

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))

STATISTICS_KEY = "statistics"


def _setup_logger(log_dir: Path = LOGS_PATH) -> Path:
    """
    Configure loguru to write to timestamped log file.

    Args:
        log_dir: Directory for log files (default: LOGS_PATH from environment)

    Returns:
        Path to the created log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"scraping_{timestamp}.txt"

    # Remove default handler and add file handler
    logger.remove()  # Remove default stderr handler
    logger.add(log_file, format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}")
    logger.add(
        lambda msg: print(msg, end=""),  # Also print to console
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}\n",
        level="INFO",
    )

    return log_file


async def crawl(
    run_input: RunInput,
    store: RecordStore,
    session_factory: Callable,
    fetch_config,
    state: Optional[RunState] = None,
) -> RunState:
    """
    Crawl from the run's search URL until a stopping rule fires.

    Args:
        run_input: Validated RunInput
        store: RecordStore receiving batches and debug dumps
        session_factory: async callable returning a fresh BrowserSession
        fetch_config: Full fetch config
        state: RunState to update; a stop requested on it ends the crawl early

    Returns:
        The RunState after the crawl

    Raises:
        SessionSetupError: If a worker cannot open its browser session
    """
    pagination = fetch_config.pagination
    state = state or RunState()
    controller = ListingController(state, store, max_jobs=run_input.max_jobs)
    queue = RequestQueue(
        max_requests=compute_max_requests(run_input.max_jobs, pagination.page_size, pagination.max_requests_cap)
    )

    def processor_factory(session) -> PageProcessor:
        enricher = DetailEnricher(session, fetch_config)
        return PageProcessor(session, controller, enricher, queue, store, run_input, fetch_config)

    crawler = Crawler(
        queue,
        session_factory,
        processor_factory,
        max_concurrency=fetch_config.crawler.max_concurrency,
        should_stop=lambda: controller.quota_reached or state.stop_requested,
    )
    await crawler.run([CrawlRequest(url=build_search_url(run_input))])
    return state


def interrupt_handler(state: RunState) -> Callable[[], None]:
    """
    Build a SIGINT callback for a running crawl.

    The first interrupt asks the crawl to wind down: queued pages are dropped,
    enrichment stops between batches and the records already claimed are
    still saved. A second interrupt aborts immediately.
    """

    def on_interrupt() -> None:
        if state.stop_requested:
            raise KeyboardInterrupt
        logger.warning("Interrupt received, finishing in-flight pages (Ctrl-C again to abort)")
        state.request_stop()

    return on_interrupt


async def _crawl_with_playwright(run_input: RunInput, store: RecordStore, fetch_config) -> RunState:
    browser = await PlaywrightBrowser.launch(
        browser_name=fetch_config.crawler.browser,
        headless=run_input.headless,
        locale=fetch_config.crawler.locale,
        proxy_url=run_input.proxy_url,
    )
    state = RunState()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, interrupt_handler(state))
        graceful_stop = True
    except NotImplementedError:
        # Event loops without signal support keep the default KeyboardInterrupt
        graceful_stop = False

    try:
        return await crawl(run_input, store, browser.new_session, fetch_config, state=state)
    finally:
        await browser.close()
        if graceful_stop:
            loop.remove_signal_handler(signal.SIGINT)


def write_statistics(state: RunState, store: RecordStore) -> Dict[str, Any]:
    statistics = state.summary()
    store.set_value(STATISTICS_KEY, statistics)
    logger.success(f"Scraping completed: {statistics}")

    if state.saved_count > 0:
        logger.info(f"Successfully scraped {state.saved_count} jobs in {statistics['duration']}")
    else:
        logger.warning("No jobs were scraped. Please check your search parameters.")
    return statistics


def run_scraper(
    run_input: RunInput,
    fetch_config=None,
    store: Optional[RecordStore] = None,
    log_dir: Path = LOGS_PATH,
) -> Dict[str, Any]:
    """
    Run one scraping job end to end and return its statistics.

    Args:
        run_input: Run parameters (validated here, before any network activity)
        fetch_config: Fetch config; loaded from CONFIG_PATH/fetch.yaml when omitted
        store: RecordStore; built from the environment when omitted
        log_dir: Directory for log files (default: LOGS_PATH)

    Returns:
        Statistics dict with totalJobsScraped, pagesProcessed,
        extractionMethod, blockedDetailPages, duration and timestamp

    Raises:
        InputValidationError: Bad run parameters
        SessionSetupError: The browser or proxy session could not be created
    """
    log_file = _setup_logger(log_dir)
    logger.info(f"Logging to: {relative_to_project(log_file)}")

    run_input.validate()
    logger.info(
        f"Starting Naukri jobs scraper (query={run_input.search_query!r}, "
        f"location={run_input.location!r}, maxJobs={run_input.max_jobs})"
    )
    logger.info(f"Search URL: {build_search_url(run_input)}")

    fetch_config = fetch_config or load_fetch_config()
    store = store or get_record_store()

    state = asyncio.run(_crawl_with_playwright(run_input, store, fetch_config))
    return write_statistics(state, store)
