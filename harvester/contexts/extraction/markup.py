"""
Listing-page extraction from rendered HTML.

Cards are located in three tiers: the primary card group, then the fallback
container groups (probing each container for nested cards first), then
detail-page anchors climbed to their nearest block ancestor. Every field on
a card is read through `first_match` over the field's selector cascade in
`selectors.py`.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from loguru import logger

from harvester.contexts.extraction import selectors as sel
from harvester.contexts.extraction.normalize import html_to_readable_text, sanitize_html_fragment
from harvester.contexts.extraction.schema import NOT_SPECIFIED, JobRecord, utc_timestamp
from harvester.utils.text_processing import clean_text

STRATEGY_PRIMARY = "primary"
STRATEGY_FALLBACK = "fallback"
STRATEGY_LINK_CLIMB = "link-climb"


@dataclass
class CardResult:
    """Either a record or the reason a card was skipped."""

    record: Optional[JobRecord] = None
    skip_reason: str = ""

    @property
    def ok(self) -> bool:
        return self.record is not None


def resolve_url(href: str) -> str:
    """Absolute URL for an href found on the site (relative paths resolve against SITE_ORIGIN)."""
    href = (href or "").strip()
    if not href:
        return ""
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(sel.SITE_ORIGIN + "/", href)


def first_match(
    root: Union[BeautifulSoup, Tag],
    selectors: List[str],
    attribute: Optional[str] = None,
    validator: Optional[Callable[[str], bool]] = None,
) -> str:
    """
    Value of the first selector in the cascade that yields something usable.

    For each selector only its first match is considered. The value is the
    element's collapsed text, or the named attribute when `attribute` is set.
    A value must be non-empty and, if a validator is given, pass it.

    Returns:
        The matched value, or "" when the cascade is exhausted
    """
    for selector in selectors:
        element = root.select_one(selector)
        if element is None:
            continue
        if attribute:
            value = (element.get(attribute) or "").strip()
        else:
            value = clean_text(element.get_text(" "))
        if value and (validator is None or validator(value)):
            return value
    return ""


def _card_url(card: Tag) -> str:
    href = first_match(card, sel.URL_SELECTORS, attribute="href")
    if not href:
        for attribute in sel.CARD_URL_ATTRIBUTES:
            if card.get(attribute):
                href = card[attribute]
                break
    return resolve_url(href)


def _snippet(card: Tag) -> Dict[str, str]:
    for selector in sel.SNIPPET_SELECTORS:
        element = card.select_one(selector)
        if element is None or not element.get_text(strip=True):
            continue
        for noise in element.select(sel.SNIPPET_NOISE_SELECTOR):
            noise.decompose()
        html = sanitize_html_fragment(element.decode_contents())
        if html:
            return {"html": html, "text": html_to_readable_text(html)}
    return {"html": "", "text": ""}


def extract_card(card: Tag, fallback: Optional[Dict[str, str]] = None) -> CardResult:
    """
    Build a JobRecord from one card element.

    Args:
        card: The card boundary element
        fallback: Values from the anchor that led to this card (link-climb
            tier). They take precedence over the card's own cascades, since a
            climbed boundary may enclose more than one listing.

    Returns:
        CardResult with the record, or the skip reason. Never raises.
    """
    fallback = fallback or {}
    try:
        title = fallback.get("title") or first_match(card, sel.TITLE_SELECTORS)
        url = fallback.get("url") or _card_url(card)
        if not title and not url:
            return CardResult(skip_reason="no title or url")

        snippet = _snippet(card)
        record = JobRecord(
            url=url,
            title=title,
            company=first_match(card, sel.COMPANY_SELECTORS),
            location=first_match(card, sel.LOCATION_SELECTORS),
            experience=first_match(card, sel.EXPERIENCE_SELECTORS) or NOT_SPECIFIED,
            salary=first_match(card, sel.SALARY_SELECTORS) or NOT_SPECIFIED,
            posted_date=first_match(card, sel.POSTED_DATE_SELECTORS),
            description_html=snippet["html"],
            description_text=snippet["text"],
            scraped_at=utc_timestamp(),
        )
        return CardResult(record=record)
    except Exception as e:
        return CardResult(skip_reason=f"card parse error: {e}")


def locate_cards(soup: BeautifulSoup) -> Tuple[List[Tag], str]:
    """
    Card elements from the primary group, else from the first fallback
    container group that yields at least one record.
    """
    cards = soup.select(sel.CARD_GROUP)
    if cards:
        return cards, STRATEGY_PRIMARY

    for selector in sel.FALLBACK_CONTAINER_SELECTORS:
        containers = soup.select(selector)
        if not containers:
            continue

        candidates = []
        for container in containers:
            nested = container.select(sel.CARD_GROUP)
            candidates.extend(nested if nested else [container])

        if any(extract_card(card).ok for card in candidates):
            logger.debug(f"Fallback container '{selector}' matched {len(containers)} elements")
            return candidates, STRATEGY_FALLBACK

    return [], ""


def link_climb_cards(soup: BeautifulSoup) -> List[Tuple[Tag, Dict[str, str]]]:
    """Pair every detail-page anchor with its enclosing card boundary and link values."""
    pairs = []
    for anchor in soup.select(sel.DETAIL_LINK_SELECTOR):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        boundary = anchor.find_parent(sel.CARD_BOUNDARY_TAGS) or anchor.parent
        if boundary is None:
            continue
        title = clean_text(anchor.get_text(" ")) or (anchor.get("title") or "").strip()
        pairs.append((boundary, {"title": title, "url": resolve_url(href)}))
    return pairs


def _dedupe(results: List[CardResult]) -> List[JobRecord]:
    jobs = []
    seen = set()
    skipped = 0
    for result in results:
        if not result.ok:
            skipped += 1
            logger.debug(f"Skipped card: {result.skip_reason}")
            continue
        url = result.record.url
        if url and url in seen:
            continue
        if url:
            seen.add(url)
        jobs.append(result.record)
    return jobs


def extract_jobs_from_markup(html: str) -> List[JobRecord]:
    """
    Extract listing records from a rendered search-results page.

    Returns records in document order, one per URL (first occurrence wins).
    Never raises; returns [] when nothing could be extracted.
    """
    if not html:
        return []

    try:
        soup = BeautifulSoup(html, "html.parser")
        cards, strategy = locate_cards(soup)
        jobs = _dedupe([extract_card(card) for card in cards])

        if not jobs:
            pairs = link_climb_cards(soup)
            if pairs:
                strategy = STRATEGY_LINK_CLIMB
                jobs = _dedupe([extract_card(card, fallback) for card, fallback in pairs])
    except Exception as e:
        logger.warning(f"Markup extraction failed: {e}")
        return []

    if jobs:
        logger.info(f"Extracted {len(jobs)} jobs from markup ({strategy} cards)")
    return jobs
