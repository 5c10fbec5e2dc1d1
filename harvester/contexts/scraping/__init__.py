"""
Job scraping domain.

Handles page navigation, challenge handling, pagination, detail-page
enrichment and run orchestration for naukri.com search results.
"""

from harvester.contexts.scraping.errors import (
    InputValidationError,
    NavigationError,
    SessionSetupError,
)
from harvester.contexts.scraping.requests import (
    FetchResponse,
    build_detail_headers,
    classify_http_status,
    fast_fetch,
)
from harvester.contexts.scraping.browser import (
    BrowserSession,
    PlaywrightBrowser,
    PlaywrightSession,
)
from harvester.contexts.scraping.challenge import (
    is_challenge,
    is_not_found,
    resolve_challenge,
)
from harvester.contexts.scraping.enrichment import DetailEnricher
from harvester.contexts.scraping.listing import (
    ListingController,
    RunState,
)
from harvester.contexts.scraping.crawler import (
    Crawler,
    CrawlRequest,
    RequestQueue,
)
from harvester.contexts.scraping.pagination import (
    PageProcessor,
    PageResult,
    PageState,
    build_next_page_url,
    compute_page_ceiling,
    parse_page_context,
)
from harvester.contexts.scraping.inputs import (
    RunInput,
    build_search_url,
)
from harvester.contexts.scraping.orchestration import (
    crawl,
    run_scraper,
)

__all__ = [
    "InputValidationError",
    "NavigationError",
    "SessionSetupError",
    "FetchResponse",
    "build_detail_headers",
    "classify_http_status",
    "fast_fetch",
    "BrowserSession",
    "PlaywrightBrowser",
    "PlaywrightSession",
    "is_challenge",
    "is_not_found",
    "resolve_challenge",
    "DetailEnricher",
    "ListingController",
    "RunState",
    "Crawler",
    "CrawlRequest",
    "RequestQueue",
    "PageProcessor",
    "PageResult",
    "PageState",
    "build_next_page_url",
    "compute_page_ceiling",
    "parse_page_context",
    "RunInput",
    "build_search_url",
    "crawl",
    "run_scraper",
]
