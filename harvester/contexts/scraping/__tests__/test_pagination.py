"""
Unit tests for page URL helpers and the per-page processor.

Run: python3 -m pytest harvester/contexts/scraping/__tests__/test_pagination.py -v
"""

import asyncio

import pytest

from harvester.contexts.scraping.crawler import CrawlRequest, RequestQueue
from harvester.contexts.scraping.enrichment import DetailEnricher
from harvester.contexts.scraping.inputs import RunInput
from harvester.contexts.scraping.listing import ListingController, RunState
from harvester.contexts.scraping.pagination import (
    DEBUG_PAGE_KEY,
    METHOD_MARKUP,
    PageProcessor,
    PageState,
    build_next_page_url,
    compute_page_ceiling,
    find_next_link,
    parse_page_context,
    parse_page_number,
)

SEARCH_URL = "https://www.naukri.com/sales-jobs-in-mumbai"


def job_url(n):
    return f"https://www.naukri.com/job-listings-sales-executive-acme-mumbai-12032550000{n}"


class TestPageUrls:
    """Tests for page-number parsing and next-page URL building."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            (SEARCH_URL, 1),
            (SEARCH_URL + "-2", 2),
            (SEARCH_URL + "?pageNo=3", 3),
            (SEARCH_URL + "?pageNo=abc", 1),
            (SEARCH_URL + "?pageNo=0", 1),
            (SEARCH_URL + "-4?experience=2", 4),
        ],
    )
    def test_parse_page_number(self, url, expected):
        assert parse_page_number(url) == expected

    def test_next_url_from_path(self):
        assert build_next_page_url(SEARCH_URL, 2) == SEARCH_URL + "-2"
        assert build_next_page_url(SEARCH_URL + "-2", 3) == SEARCH_URL + "-3"
        assert build_next_page_url(SEARCH_URL + "?experience=2", 2) == SEARCH_URL + "-2?experience=2"

    def test_next_url_from_query_parameter(self):
        url = "https://www.naukri.com/sales-jobs?pageNo=2&k=sales"
        assert build_next_page_url(url, 3) == "https://www.naukri.com/sales-jobs?pageNo=3&k=sales"

    def test_page_context_from_url(self):
        context = parse_page_context(SEARCH_URL + "-2")
        assert (context.search_query, context.search_location, context.page_number) == ("sales", "mumbai", 2)

    def test_page_context_falls_back_to_run_input(self):
        context = parse_page_context(
            "https://www.naukri.com/recruit/search?pageNo=2",
            RunInput(search_query="field sales", location="Pune"),
        )
        assert (context.search_query, context.search_location, context.page_number) == ("field sales", "Pune", 2)

    def test_page_ceiling(self):
        assert compute_page_ceiling(5, 20, 50) == 1
        assert compute_page_ceiling(45, 20, 50) == 3
        assert compute_page_ceiling(0, 20, 50) == 50


class TestFindNextLink:
    def test_explicit_next_link(self):
        html = (
            '<a class="styles_btn-secondary__2AsIP" href="/sales-jobs-in-mumbai">Previous</a>'
            '<a class="styles_btn-secondary__2AsIP" href="/sales-jobs-in-mumbai-3">Next</a>'
        )
        assert find_next_link(html, SEARCH_URL + "-2") == "https://www.naukri.com/sales-jobs-in-mumbai-3"

    def test_disabled_or_missing(self):
        html = '<a class="styles_btn-secondary__2AsIP disabled" href="#">Next</a>'
        assert find_next_link(html, SEARCH_URL) is None
        assert find_next_link("<html></html>", SEARCH_URL) is None

    def test_rel_next(self):
        assert find_next_link('<a rel="next" href="?pageNo=2">2</a>', SEARCH_URL) == SEARCH_URL + "?pageNo=2"


def make_processor(session, store, fetch_config, max_jobs=5, state=None):
    state = state or RunState()
    controller = ListingController(state, store, max_jobs=max_jobs)
    queue = RequestQueue(max_requests=10)
    enricher = DetailEnricher(session, fetch_config)
    run_input = RunInput(search_query="sales", location="mumbai", max_jobs=max_jobs)
    return PageProcessor(session, controller, enricher, queue, store, run_input, fetch_config)


class TestPageProcessor:
    """Tests for the per-page state machine."""

    def test_navigation_ladder_exhausted(self, make_session, memory_store, fetch_config):
        session = make_session(navigation_failures=2)
        processor = make_processor(session, memory_store, fetch_config)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert session.goto_calls == [(SEARCH_URL, "domcontentloaded"), (SEARCH_URL, "load")]
        assert processor.state.pages_processed == 1
        assert memory_store.records == []

    def test_second_navigation_attempt_succeeds(self, make_session, memory_store, fetch_config, card_html, page_html):
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)))}, navigation_failures=1)
        processor = make_processor(session, memory_store, fetch_config, max_jobs=1)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.saved == 1
        assert len(session.goto_calls) == 2

    def test_unresolved_challenge_stops(self, make_session, memory_store, fetch_config, card_html, page_html):
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)))}, challenge_checks=10)
        processor = make_processor(session, memory_store, fetch_config)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert result.reason == "challenge not resolved"
        assert session.clicks == fetch_config.challenge.max_attempts
        assert memory_store.records == []

    def test_resolved_challenge_continues(self, make_session, memory_store, fetch_config, card_html, page_html):
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)))}, challenge_checks=1)
        processor = make_processor(session, memory_store, fetch_config, max_jobs=1)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.saved == 1
        assert session.clicks == 1

    def test_no_jobs_saves_debug_page(self, make_session, memory_store, fetch_config):
        page = "<html><head><title>Jobs</title></head><body><p>No matching jobs</p></body></html>"
        session = make_session(pages={SEARCH_URL: page})
        processor = make_processor(session, memory_store, fetch_config)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert memory_store.values[DEBUG_PAGE_KEY] == page
        assert memory_store.content_types[DEBUG_PAGE_KEY] == "text/html"

    def test_debug_dump_failure_is_not_fatal(self, make_session, memory_store, fetch_config):
        def broken_set_value(key, value, content_type=None):
            raise OSError("read-only store")

        memory_store.set_value = broken_set_value
        processor = make_processor(make_session(), memory_store, fetch_config)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert result.reason == "no jobs extracted"

    def test_enqueues_next_page(self, make_session, memory_store, fetch_config, card_html, page_html):
        fetch_config.pagination.page_size = 2
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)), card_html(job_url(2)))})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.NEXT_PAGE
        assert result.saved == 2
        assert result.next_request.url == SEARCH_URL + "-2"
        assert result.next_request.page_number == 2
        assert result.next_request.unique_key == SEARCH_URL + "-2-page-2"
        assert processor.queue.accepted_count == 1
        assert processor.state.extraction_method == METHOD_MARKUP

    def test_next_page_built_from_landing_url(self, make_session, memory_store, fetch_config, card_html, page_html):
        """After a redirect the next page follows the URL the browser landed on."""
        fetch_config.pagination.page_size = 1
        landed = SEARCH_URL + "?experience=2"
        session = make_session(pages={landed: page_html(card_html(job_url(1)))}, redirects={SEARCH_URL: landed})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.next_request.url == SEARCH_URL + "-2?experience=2"

    def test_prefers_explicit_next_link(self, make_session, memory_store, fetch_config, card_html, page_html):
        fetch_config.pagination.page_size = 1
        next_link = '<a class="styles_btn-secondary__2AsIP" href="/sales-jobs-in-mumbai-7">Next</a>'
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)), extra=next_link)})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.next_request.url == "https://www.naukri.com/sales-jobs-in-mumbai-7"

    def test_request_page_number_wins(self, make_session, memory_store, fetch_config, card_html, page_html):
        fetch_config.pagination.page_size = 1
        url = SEARCH_URL + "-2"
        session = make_session(pages={url: page_html(card_html(job_url(1)))})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10)

        result = asyncio.run(processor.process(CrawlRequest(url, page_number=3)))

        assert result.next_request.page_number == 4
        assert result.next_request.url == SEARCH_URL + "-4"

    def test_page_ceiling_stops(self, make_session, memory_store, fetch_config, card_html, page_html):
        """Default page size 20 with a quota of 10 allows a single page."""
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)))})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert result.saved == 1
        assert processor.queue.accepted_count == 0

    def test_no_new_records_stops(self, make_session, memory_store, fetch_config, card_html, page_html):
        fetch_config.pagination.page_size = 1
        state = RunState()
        state.seen_urls.update({job_url(1), job_url(2)})
        session = make_session(pages={SEARCH_URL: page_html(card_html(job_url(1)), card_html(job_url(2)))})
        processor = make_processor(session, memory_store, fetch_config, max_jobs=10, state=state)

        result = asyncio.run(processor.process(CrawlRequest(SEARCH_URL)))

        assert result.state is PageState.STOP
        assert result.saved == 0
        assert memory_store.batches == []
        assert processor.queue.accepted_count == 0
