"""HTTP helpers shared by the enricher and the browser session."""

from dataclasses import dataclass
from typing import Dict, Optional

import requests

from harvester.contexts.extraction.schema import DetailOutcome
from harvester.contexts.extraction.selectors import SITE_ORIGIN

# Statuses the site uses for rate limiting and bot blocking
BlockedCodeSet = (403, 429, 503)

DETAIL_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
DETAIL_ACCEPT_LANGUAGE = "en-IN,en-US;q=0.9,en;q=0.8"


@dataclass
class FetchResponse:
    """Status and body of one detail-page request, from either transport."""

    status: int
    text: str = ""
    url: str = ""


def build_detail_headers(user_agent: str = "", cookie_header: str = "") -> Dict[str, str]:
    """
    Headers that make a detail fetch look like same-site navigation.

    Args:
        user_agent: The browser session's user agent
        cookie_header: "name=value; ..." from the browser session's cookie jar
    """
    headers = {
        "Accept": DETAIL_ACCEPT,
        "Accept-Language": DETAIL_ACCEPT_LANGUAGE,
        "Referer": SITE_ORIGIN + "/",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "same-origin",
    }
    if user_agent:
        headers["User-Agent"] = user_agent
    if cookie_header:
        headers["Cookie"] = cookie_header
    return headers


def classify_http_status(status: int) -> Optional[DetailOutcome]:
    """
    Map a detail-page status to a terminal outcome.

    Returns:
        BLOCKED for 403/429/503, NOT_FOUND for any other non-200 status,
        None when the body should be parsed
    """
    if status in BlockedCodeSet:
        return DetailOutcome.BLOCKED
    if status != 200:
        return DetailOutcome.NOT_FOUND
    return None


def requests_proxies(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    if not proxy_url:
        return None
    return {"http": proxy_url, "https": proxy_url}


def fast_fetch(
    url: str,
    headers: Dict[str, str],
    timeout: float,
    proxy_url: Optional[str] = None,
) -> FetchResponse:
    """
    Single plain-HTTP GET of a detail page (no retries).

    Raises:
        requests.RequestException: On transport failure (connection, timeout,
            TLS). Callers fall back to the browser session's request API.
    """
    response = requests.get(
        url,
        headers=headers,
        timeout=timeout,
        proxies=requests_proxies(proxy_url),
        allow_redirects=True,
    )
    return FetchResponse(status=response.status_code, text=response.text, url=response.url)
