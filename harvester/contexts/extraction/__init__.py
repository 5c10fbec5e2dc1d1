"""
Job record extraction domain.

Turns rendered search-results pages and detail pages into normalized
JobRecords. Pure parsing only: nothing in this context touches the network.
"""

from harvester.contexts.extraction.schema import (
    NOT_SPECIFIED,
    DetailOutcome,
    DetailFetchResult,
    JobRecord,
    PageContext,
    has_value,
    utc_timestamp,
)
from harvester.contexts.extraction.normalize import (
    sanitize_html_fragment,
    html_to_readable_text,
    extract_clean_section,
    normalize_location,
    normalize_salary,
    experience_from_months,
    experience_from_text,
    looks_like_html,
)
from harvester.contexts.extraction.structured import (
    iter_postings,
    parse_job_posting,
    extract_jobs_from_blocks,
    extract_jobs_from_html,
    find_posting_description,
)
from harvester.contexts.extraction.markup import (
    CardResult,
    first_match,
    extract_card,
    extract_jobs_from_markup,
    resolve_url,
)

__all__ = [
    # Records
    "NOT_SPECIFIED",
    "DetailOutcome",
    "DetailFetchResult",
    "JobRecord",
    "PageContext",
    "has_value",
    "utc_timestamp",
    # Normalization
    "sanitize_html_fragment",
    "html_to_readable_text",
    "extract_clean_section",
    "normalize_location",
    "normalize_salary",
    "experience_from_months",
    "experience_from_text",
    "looks_like_html",
    # Extractors
    "iter_postings",
    "parse_job_posting",
    "extract_jobs_from_blocks",
    "extract_jobs_from_html",
    "find_posting_description",
    "CardResult",
    "first_match",
    "extract_card",
    "extract_jobs_from_markup",
    "resolve_url",
]
