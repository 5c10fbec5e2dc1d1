"""
Record types shared by the extraction and scraping contexts.

JobRecord is the unit of output. It is created once by an extractor, may be
merged with a detail-page result exactly once, and is never mutated after
that (the dataclass is frozen; merging returns a new record).

DetailFetchResult is the tagged outcome of one detail-page fetch. Blocked
and not-found pages are represented as values here, never as exceptions.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple

NOT_SPECIFIED = "Not specified"

# Dataclass field -> key used in persisted output
OUTPUT_KEYS = {
    "url": "url",
    "job_id": "jobId",
    "title": "title",
    "company": "company",
    "location": "location",
    "salary": "salary",
    "experience": "experience",
    "job_type": "jobType",
    "posted_date": "postedDate",
    "tags": "tags",
    "description_html": "descriptionHtml",
    "description_text": "descriptionText",
    "scraped_at": "scrapedAt",
}

# Fields only the enricher populates; absent from output until then
ENRICHMENT_ONLY_FIELDS = ("job_id", "tags")

# Detail-page descriptions replace listing snippets whenever present
DESCRIPTION_FIELDS = ("description_html", "description_text")

# Secondary detail fields only fill gaps left by listing extraction
SECONDARY_FIELDS = ("experience", "salary", "job_type")


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def has_value(value) -> bool:
    """True when a field value carries information (not empty, not the sentinel)."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip()) and value != NOT_SPECIFIED
    if isinstance(value, (tuple, list)):
        return len(value) > 0
    return True


class DetailOutcome(str, Enum):
    OK = "ok"
    BLOCKED = "blocked"
    NOT_FOUND = "not_found"
    EMPTY = "empty"


@dataclass(frozen=True)
class DetailFetchResult:
    """Result of fetching and parsing one detail page."""

    outcome: DetailOutcome
    description_html: str = ""
    description_text: str = ""
    experience: str = ""
    salary: str = ""
    job_type: str = ""
    tags: Optional[Tuple[str, ...]] = None
    job_id: Optional[str] = None
    status: Optional[int] = None
    source: str = ""

    @classmethod
    def blocked(cls, status: Optional[int] = None) -> "DetailFetchResult":
        return cls(outcome=DetailOutcome.BLOCKED, status=status)

    @classmethod
    def not_found(cls, status: Optional[int] = None) -> "DetailFetchResult":
        return cls(outcome=DetailOutcome.NOT_FOUND, status=status)

    @classmethod
    def empty(cls, status: Optional[int] = None) -> "DetailFetchResult":
        return cls(outcome=DetailOutcome.EMPTY, status=status)

    @property
    def is_ok(self) -> bool:
        return self.outcome is DetailOutcome.OK


@dataclass(frozen=True)
class JobRecord:
    """One job listing, as captured from a listing page and optionally enriched."""

    url: str = ""
    title: str = ""
    company: str = ""
    location: str = ""
    salary: str = NOT_SPECIFIED
    experience: str = NOT_SPECIFIED
    job_type: str = NOT_SPECIFIED
    posted_date: str = ""
    description_html: str = ""
    description_text: str = ""
    scraped_at: str = field(default_factory=utc_timestamp)
    job_id: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None

    def is_retainable(self) -> bool:
        """A record is kept only if it has a title or a URL."""
        return bool(self.title.strip() or self.url.strip())

    def merge_enrichment(self, result: DetailFetchResult) -> "JobRecord":
        """
        Return a copy of this record with detail-page values merged in.

        Descriptions are replaced when the detail page produced one. Secondary
        fields (experience, salary, job type) and enrichment-only fields
        (job id, tags) are filled only where this record has nothing yet.
        Enrichment never blanks a populated field.
        """
        if not result.is_ok:
            return self

        updates = {}
        for name in DESCRIPTION_FIELDS:
            value = getattr(result, name)
            if has_value(value):
                updates[name] = value

        for name in SECONDARY_FIELDS + ENRICHMENT_ONLY_FIELDS:
            value = getattr(result, name)
            if has_value(value) and not has_value(getattr(self, name)):
                updates[name] = value

        return replace(self, **updates) if updates else self

    def to_dict(self) -> Dict:
        """Output mapping with camelCase keys; enrichment-only fields omitted while unset."""
        output = {}
        for name, key in OUTPUT_KEYS.items():
            value = getattr(self, name)
            if name in ENRICHMENT_ONLY_FIELDS and value is None:
                continue
            output[key] = list(value) if name == "tags" else value
        return output


@dataclass
class PageContext:
    """Per-page facts derived from one fetched search-results page."""

    url: str
    page_number: int = 1
    search_query: str = ""
    search_location: str = ""
    extraction_method: str = ""
