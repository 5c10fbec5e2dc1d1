"""
Record normalization helpers shared by both extractors and the enricher.

- HTML fragments: sanitize to a small allow-list and convert to readable text
- Sections: pick the first selector whose content survives validation
- Field strings: location, salary and experience normalization
"""

import copy
import math
import re
from typing import Dict, Iterable, Optional, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from harvester.contexts.extraction.schema import NOT_SPECIFIED
from harvester.contexts.extraction.selectors import (
    DETAIL_NOISE_SELECTOR,
    RELATED_SECTION_WORDS,
)
from harvester.utils.text_processing import clean_text, collapse_blank_lines, contains_any

# Removed together with their content
STRIP_TAGS = [
    "script", "style", "noscript", "template", "svg", "img", "picture", "source",
    "video", "audio", "iframe", "object", "embed", "canvas", "form", "input",
    "button", "select", "option", "textarea", "label",
]

ALLOWED_TAGS = frozenset({
    "p", "ul", "ol", "li", "br", "b", "strong", "i", "em", "u",
    "h1", "h2", "h3", "h4", "h5", "h6", "a",
})
ALLOWED_ATTRIBUTES = frozenset({"href"})

# Void elements are meaningful without content
VOID_TAGS = frozenset({"br"})

TEXT_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li"]

INTERSTITIAL_PHRASES = (
    "page could not be found",
    "checking your browser",
    "just a moment",
)

# Fragments carrying these are framework bundle/asset echoes, not descriptions
BUNDLE_MARKERS = (
    "static.naukimg.com",
    "img.naukimg.com",
    "webpackChunk",
    "__NEXT_DATA__",
    "_next/static",
    "window.__",
)

MAX_SECTION_HTML = 60000

_TAG_LIKE = re.compile(r"<\s*/?\s*[a-zA-Z][^>]*>")
_RANGE_YEARS = re.compile(r"(\d+)\s*(?:-|–|to)\s*(\d+)\s*(?:years?|yrs?)", re.IGNORECASE)
_SINGLE_YEARS = re.compile(r"(\d+)\s*\+?\s*(?:years?|yrs?)", re.IGNORECASE)


# -- HTML fragments -----------------------------------------------------------

def looks_like_html(text: str) -> bool:
    """True when text contains anything tag-like."""
    return bool(text) and _TAG_LIKE.search(text) is not None


def _is_empty_element(tag: Tag) -> bool:
    if tag.name in VOID_TAGS:
        return False
    has_child_elements = any(isinstance(child, Tag) for child in tag.children)
    return not has_child_elements and not tag.get_text(strip=True)


def _drop_empty_elements(soup: BeautifulSoup) -> None:
    # Removing a child can empty its parent, so repeat until stable
    removed = True
    while removed:
        removed = False
        for tag in soup.find_all(True):
            if _is_empty_element(tag):
                tag.decompose()
                removed = True


def _canonical_whitespace(soup: BeautifulSoup) -> None:
    # Unwrapping leaves runs of adjacent whitespace strings; fold each run to one
    # node so a second parse sees the same tree
    soup.smooth()
    for node in soup.find_all(string=True):
        if isinstance(node, NavigableString) and not node.strip() and "\n" in node:
            node.replace_with("\n")


def sanitize_html_fragment(html: str) -> str:
    """
    Reduce an HTML fragment to allow-listed content markup.

    Non-content elements (scripts, styles, media, forms, controls) are removed
    with their content. Any other tag outside ALLOWED_TAGS is replaced by its
    children. Only `href` attributes survive. Elements left without children
    or text are dropped. The result is idempotent under re-sanitization.

    Args:
        html: Arbitrary HTML fragment or full document

    Returns:
        Trimmed HTML string, or "" if nothing remains
    """
    if not html or not html.strip():
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
        else:
            tag.attrs = {name: value for name, value in tag.attrs.items() if name in ALLOWED_ATTRIBUTES}

    _drop_empty_elements(soup)
    _canonical_whitespace(soup)

    if not soup.get_text(strip=True):
        return ""
    return str(soup).strip()


def html_to_readable_text(html: str) -> str:
    """
    Render an HTML fragment as plain text.

    Headings, paragraphs and list items each become one line (list items are
    prefixed with "- "). Without any such element the whole fragment's text
    is used. Runs of 3+ newlines collapse to a single blank line.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    lines = []
    for element in soup.find_all(TEXT_BLOCK_TAGS):
        # Nested blocks are rendered by their outermost block
        if element.find_parent(TEXT_BLOCK_TAGS) is not None:
            continue
        text = clean_text(element.get_text(" "))
        if not text:
            continue
        lines.append(f"- {text}" if element.name == "li" else text)

    if lines:
        return collapse_blank_lines("\n".join(lines))

    for br in soup.find_all("br"):
        br.replace_with("\n")
    return collapse_blank_lines(soup.get_text())


def strip_detail_noise(element: Tag) -> Tag:
    """
    Return a detached copy of element without source/apply widgets and
    without trailing related/similar/recommended job sections.
    """
    fragment = copy.copy(element)

    for noise in fragment.select(DETAIL_NOISE_SELECTOR):
        noise.decompose()

    for heading in fragment.find_all(["h2", "h3", "h4"]):
        if heading.decomposed:
            continue
        if contains_any(heading.get_text(" "), RELATED_SECTION_WORDS):
            for sibling in list(heading.find_next_siblings()):
                sibling.decompose()
            heading.decompose()

    return fragment


def extract_clean_section(
    root: Union[BeautifulSoup, Tag],
    selectors: Iterable[str],
    min_text_length: int,
) -> Optional[Dict[str, str]]:
    """
    Try selectors in order and return the first section that validates.

    A match qualifies when its raw text is at least min_text_length long, its
    sanitized HTML is non-empty, below MAX_SECTION_HTML and free of bundle
    markers, and its text is not an interstitial/challenge message.

    Returns:
        {"html": sanitized_html, "text": readable_text} or None
    """
    for selector in selectors:
        for element in root.select(selector):
            raw_text = element.get_text(" ", strip=True)
            if len(raw_text) < min_text_length:
                continue

            fragment = strip_detail_noise(element)
            html = sanitize_html_fragment(fragment.decode_contents())
            if not html or len(html) >= MAX_SECTION_HTML:
                continue
            if contains_any(html, BUNDLE_MARKERS):
                continue

            text = html_to_readable_text(html)
            if not text or contains_any(text, INTERSTITIAL_PHRASES):
                continue

            return {"html": html, "text": text}

    return None


def description_from_value(raw: str) -> Dict[str, str]:
    """
    Normalize a description value of unknown format.

    HTML is sanitized and rendered to text; plain text is kept verbatim as
    the text and wrapped in a single paragraph for the HTML field.
    """
    if not raw or not raw.strip():
        return {"html": "", "text": ""}

    if looks_like_html(raw):
        html = sanitize_html_fragment(raw)
        return {"html": html, "text": html_to_readable_text(html)}

    text = raw.strip()
    paragraph = BeautifulSoup("", "html.parser").new_tag("p")
    paragraph.string = text
    return {"html": str(paragraph), "text": text}


# -- Field strings ------------------------------------------------------------

def _format_address(entry) -> str:
    if isinstance(entry, str):
        return entry
    if not isinstance(entry, dict):
        return ""

    address = entry.get("address", entry)
    if isinstance(address, str):
        return address
    if not isinstance(address, dict):
        return ""

    parts = []
    for key in ("addressLocality", "addressRegion", "addressCountry"):
        value = address.get(key)
        if isinstance(value, dict):
            value = value.get("name")
        value = clean_text(str(value)) if value else ""
        if value:
            parts.append(value)
    return ", ".join(parts)


def normalize_location(job_location) -> str:
    """
    Normalize a structured-data jobLocation into a display string.

    Each location is rendered independently (string addresses verbatim,
    otherwise "locality, region, country"), then joined with " | " keeping
    the first occurrence of each distinct string.
    """
    entries = job_location if isinstance(job_location, list) else [job_location]

    rendered = []
    for entry in entries:
        text = _format_address(entry)
        if text and text not in rendered:
            rendered.append(text)
    return " | ".join(rendered)


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


def _format_number(number: float) -> str:
    return str(int(number)) if number.is_integer() else str(number)


def normalize_salary(base_salary) -> str:
    """
    Render a structured-data baseSalary.

    Ranges become "{min}-{max} {currency}", scalars "{value} {currency}"; the
    currency token is omitted when absent. Anything else is NOT_SPECIFIED.
    """
    if not isinstance(base_salary, dict):
        return NOT_SPECIFIED

    value = base_salary.get("value")
    currency = base_salary.get("currency") or ""
    if isinstance(value, dict):
        currency = currency or value.get("currency") or ""
        low, high = _as_number(value.get("minValue")), _as_number(value.get("maxValue"))
        if low is not None and high is not None:
            amount = f"{_format_number(low)}-{_format_number(high)}"
        else:
            scalar = _as_number(value.get("value"))
            if scalar is None:
                return NOT_SPECIFIED
            amount = _format_number(scalar)
    else:
        scalar = _as_number(value)
        if scalar is None:
            return NOT_SPECIFIED
        amount = _format_number(scalar)

    return f"{amount} {currency}".strip()


def experience_from_months(months) -> str:
    """
    Convert a months-of-experience figure to years, rounded to one decimal.

    Example:
        >>> experience_from_months(30)
        "2.5 years"
    """
    value = _as_number(months)
    if value is None or value < 0:
        return NOT_SPECIFIED
    # Half-up rounding to one decimal
    years = math.floor(value / 12 * 10 + 0.5) / 10
    return f"{_format_number(years)} years"


def experience_from_text(text: str) -> str:
    """Find "N-M years", "N+ years" or "fresher" in free text."""
    if not text:
        return NOT_SPECIFIED

    match = _RANGE_YEARS.search(text)
    if match:
        return f"{match.group(1)}-{match.group(2)} years"

    match = _SINGLE_YEARS.search(text)
    if match:
        return f"{match.group(1)}+ years"

    if "fresher" in text.lower():
        return "0-1 years"

    return NOT_SPECIFIED
