"""
Text processing utilities for the harvester.

Small helpers for whitespace cleanup and phrase matching that the
extractors and the enricher share.
"""

from typing import Iterable

import re

_INLINE_WHITESPACE = re.compile(r"[ \t\r\f\v\u00a0]+")
_BLANK_LINE_RUN = re.compile(r"\n{3,}")


def clean_text(text: str) -> str:
    """
    Collapse all whitespace runs (newlines included) into single spaces.

    Args:
        text: Raw text, typically from an element's get_text()

    Returns:
        Single-line, trimmed string ("" for None/empty input)
    """
    if not text:
        return ""
    return " ".join(text.split())


def collapse_blank_lines(text: str) -> str:
    """
    Normalize multi-line text for storage.

    Trims each line, squeezes inline whitespace and collapses three or more
    consecutive newlines to exactly one blank line.

    Example:
        >>> collapse_blank_lines("a  b\\n\\n\\n\\nc")
        "a b\\n\\nc"
    """
    if not text:
        return ""

    lines = [_INLINE_WHITESPACE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINE_RUN.sub("\n\n", "\n".join(lines)).strip()


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Case-insensitive check for any of the phrases inside text."""
    if not text:
        return False
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in phrases)
