"""
Pytest configuration and shared fixtures.

- No test touches the network: the plain-HTTP fast path raises a transport
  error unless a test patches it
- FakeSession stands in for a browser session, serving canned listing pages,
  detail responses and rendered detail pages
- MemoryRecordStore keeps pushed records and key-values in memory
"""

from typing import Any, Dict, List, Optional

import pytest
import requests

from harvester.contexts.scraping.browser import BrowserSession
from harvester.contexts.scraping.errors import NavigationError
from harvester.contexts.scraping.requests import FetchResponse
from harvester.contexts.storage.store import RecordStore
from harvester.utils.config_helpers import load_fetch_config

EMPTY_PAGE = "<html><head><title>Jobs</title></head><body></body></html>"
CHALLENGE_TITLE = "Just a moment..."


class FakeSession(BrowserSession):
    """
    In-memory BrowserSession.

    Args:
        pages: URL -> listing page HTML returned by content() after goto()
        details: URL -> FetchResponse for the browser-context request API
        rendered: URL -> HTML returned by render()
        challenge_checks: How many title() calls report a challenge page
        navigation_failures: How many goto() calls fail before one succeeds
        redirects: URL -> final URL the page lands on after goto()
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        details: Optional[Dict[str, FetchResponse]] = None,
        rendered: Optional[Dict[str, str]] = None,
        challenge_checks: int = 0,
        navigation_failures: int = 0,
        redirects: Optional[Dict[str, str]] = None,
    ):
        self.pages = pages or {}
        self.details = details or {}
        self.rendered = rendered or {}
        self.challenge_checks = challenge_checks
        self.navigation_failures = navigation_failures
        self.redirects = redirects or {}
        self.proxy_url = None

        self.current_url = ""
        self.goto_calls: List[tuple] = []
        self.request_calls: List[str] = []
        self.render_calls: List[str] = []
        self.waits: List[float] = []
        self.clicks = 0
        self.closed = False

    @property
    def url(self):
        return self.current_url

    async def goto(self, url, wait_until, timeout):
        self.goto_calls.append((url, wait_until))
        if self.navigation_failures > 0:
            self.navigation_failures -= 1
            raise NavigationError(f"{wait_until} navigation to {url} timed out")
        self.current_url = self.redirects.get(url, url)
        return 200

    async def wait_for_load_state(self, state, timeout):
        return None

    async def title(self):
        if self.challenge_checks > 0:
            self.challenge_checks -= 1
            return CHALLENGE_TITLE
        return "Jobs"

    async def body_text(self, limit=2000):
        return ""

    async def content(self):
        return self.pages.get(self.current_url, EMPTY_PAGE)

    async def click_challenge_checkbox(self, timeout):
        self.clicks += 1
        return False

    async def cookie_header(self):
        return "nauk_session=abc123"

    async def user_agent(self):
        return "FakeBrowser/1.0"

    async def request(self, url, headers, timeout):
        self.request_calls.append(url)
        return self.details.get(url, FetchResponse(status=404, text="", url=url))

    async def render(self, url, timeout):
        self.render_calls.append(url)
        return self.rendered.get(url, EMPTY_PAGE)

    async def close(self):
        self.closed = True

    async def wait(self, seconds):
        self.waits.append(seconds)


class MemoryRecordStore(RecordStore):
    def __init__(self):
        self.records: List[Dict] = []
        self.batches: List[List[Dict]] = []
        self.values: Dict[str, Any] = {}
        self.content_types: Dict[str, Optional[str]] = {}

    def push_records(self, records):
        self.batches.append(list(records))
        self.records.extend(records)

    def set_value(self, key, value, content_type=None):
        self.values[key] = value
        self.content_types[key] = content_type

    def get_value(self, key):
        return self.values.get(key)


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Make every plain-HTTP detail fetch fail at the transport level."""

    def offline_fetch(url, *args, **kwargs):
        raise requests.ConnectionError(f"network disabled in tests: {url}")

    monkeypatch.setattr("harvester.contexts.scraping.enrichment.fast_fetch", offline_fetch)


@pytest.fixture
def fetch_config():
    """fetch.yaml with every delay zeroed and progress bars off."""
    return load_fetch_config(
        overrides={
            "navigation": {"retry_delay": 0, "settle_delay": 0},
            "challenge": {"backoff": 0, "click_settle": 0, "settle": 0},
            "detail": {"enrich_batch_delay": 0, "show_progress": False},
            "crawler": {"max_concurrency": 1},
        }
    )


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def memory_store():
    return MemoryRecordStore()


@pytest.fixture
def card_html():
    """Build one listing card in the site's primary card markup."""

    def build(
        url: str,
        title: str = "Sales Executive",
        company: str = "Acme Corp",
        location: str = "Mumbai",
        experience: str = "1-3 Yrs",
        salary: str = "3-5 Lacs PA",
        snippet: str = "Field sales for retail accounts.",
    ) -> str:
        return (
            '<article class="jobTuple">'
            f'<a class="title" href="{url}">{title}</a>'
            f'<a class="comp-name">{company}</a>'
            f'<span class="location">{location}</span>'
            f'<span class="exp">{experience}</span>'
            f'<span class="salary">{salary}</span>'
            f'<div class="job-desc"><p>{snippet}</p></div>'
            '<span class="job-post-day">3 Days Ago</span>'
            "</article>"
        )

    return build


@pytest.fixture
def page_html():
    """Wrap card markup (and optional extra body markup) in a results page."""

    def build(*cards: str, extra: str = "") -> str:
        return (
            "<html><head><title>Sales Jobs In Mumbai - Naukri.com</title></head>"
            f"<body><div class=\"list\">{''.join(cards)}</div>{extra}</body></html>"
        )

    return build


@pytest.fixture
def detail_html():
    """Build a detail page whose description sits in the primary region."""

    def build(description: str, title: str = "Sales Executive - Acme Corp", extra: str = "") -> str:
        return (
            f"<html><head><title>{title}</title></head><body>"
            f'<div class="styles_JDC__dang-inner-html__h0K4t">{description}</div>'
            f"{extra}</body></html>"
        )

    return build


LONG_DESCRIPTION = (
    "<p>We are hiring a field sales executive to grow retail accounts across Mumbai.</p>"
    "<ul><li>Own a territory of 40 outlets</li><li>Report weekly pipeline numbers</li></ul>"
)


@pytest.fixture
def long_description():
    return LONG_DESCRIPTION
