"""
Structured-data (JSON-LD JobPosting) extraction.

Embedded blocks come in four shapes: a bare posting, an array of postings,
an object with a `@graph` array, or an `ItemList` whose `itemListElement`
entries wrap postings under `item`. `iter_postings` flattens all of them
into one stream of candidates before any posting is mapped, so the mapper
never has to care which shape it came from.
"""

import html as html_module
import json
from typing import Dict, Iterable, Iterator, List, Optional

from bs4 import BeautifulSoup
from loguru import logger

from harvester.contexts.extraction.normalize import (
    description_from_value,
    experience_from_months,
    experience_from_text,
    normalize_location,
    normalize_salary,
)
from harvester.contexts.extraction.schema import NOT_SPECIFIED, JobRecord, utc_timestamp
from harvester.utils.text_processing import clean_text

POSTING_TYPE = "JobPosting"
LD_JSON_SELECTOR = 'script[type="application/ld+json"]'


def _is_posting(candidate) -> bool:
    if not isinstance(candidate, dict):
        return False
    type_tag = candidate.get("@type")
    if isinstance(type_tag, list):
        return POSTING_TYPE in type_tag
    return type_tag == POSTING_TYPE


def _candidates(data) -> Iterator:
    if isinstance(data, list):
        for entry in data:
            yield from _candidates(entry)
        return

    if not isinstance(data, dict):
        return

    if isinstance(data.get("@graph"), list):
        yield from data["@graph"]
    elif data.get("@type") == "ItemList" and isinstance(data.get("itemListElement"), list):
        for entry in data["itemListElement"]:
            if isinstance(entry, dict) and isinstance(entry.get("item"), dict):
                yield entry["item"]
            else:
                yield entry
    else:
        yield data


def iter_postings(data) -> Iterator[Dict]:
    """Yield every JobPosting object found in one parsed structured-data block."""
    for candidate in _candidates(data):
        if _is_posting(candidate):
            yield candidate


def _text(value) -> str:
    if isinstance(value, dict):
        value = value.get("name") or value.get("value") or ""
    if isinstance(value, list):
        return ", ".join(part for part in (_text(v) for v in value) if part)
    return clean_text(str(value)) if value not in (None, "") else ""


def _experience(posting: Dict, description_text: str) -> str:
    requirements = posting.get("experienceRequirements")
    if isinstance(requirements, dict) and requirements.get("monthsOfExperience") is not None:
        years = experience_from_months(requirements["monthsOfExperience"])
        if years != NOT_SPECIFIED:
            return years
    elif isinstance(requirements, str):
        years = experience_from_text(requirements)
        if years != NOT_SPECIFIED:
            return years
    return experience_from_text(description_text)


def _tags(posting: Dict):
    skills = posting.get("skills")
    if isinstance(skills, str):
        values = [clean_text(part) for part in skills.split(",")]
    elif isinstance(skills, list):
        values = [_text(part) for part in skills]
    else:
        return None
    values = [value for value in values if value]
    return tuple(values) or None


def _job_id(posting: Dict) -> Optional[str]:
    identifier = posting.get("identifier")
    if isinstance(identifier, dict):
        identifier = identifier.get("value")
    if identifier in (None, ""):
        return None
    return str(identifier)


def parse_job_posting(posting: Dict, scraped_at: Optional[str] = None) -> JobRecord:
    """
    Map one JobPosting object to a JobRecord.

    Args:
        posting: Parsed JobPosting dict
        scraped_at: Capture timestamp; defaults to now

    Returns:
        JobRecord (may be non-retainable if the posting has no title or url)
    """
    raw_description = posting.get("description") or ""
    if isinstance(raw_description, str) and "&lt;" in raw_description:
        raw_description = html_module.unescape(raw_description)
    description = description_from_value(str(raw_description))

    return JobRecord(
        url=_text(posting.get("url")),
        title=_text(posting.get("title")),
        company=_text(posting.get("hiringOrganization")),
        location=normalize_location(posting.get("jobLocation")),
        salary=normalize_salary(posting.get("baseSalary")),
        experience=_experience(posting, description["text"]),
        job_type=_text(posting.get("employmentType")) or NOT_SPECIFIED,
        posted_date=_text(posting.get("datePosted")),
        description_html=description["html"],
        description_text=description["text"],
        scraped_at=scraped_at or utc_timestamp(),
        job_id=_job_id(posting),
        tags=_tags(posting),
    )


def extract_jobs_from_blocks(blocks: Iterable[str]) -> List[JobRecord]:
    """
    Parse raw structured-data blocks into records.

    Malformed blocks and postings that fail to map are skipped individually.
    Never raises.
    """
    jobs = []
    scraped_at = utc_timestamp()
    skipped = 0

    for index, block in enumerate(blocks):
        try:
            data = json.loads(block)
        except (TypeError, ValueError) as e:
            skipped += 1
            logger.debug(f"Skipping malformed structured-data block {index}: {e}")
            continue

        for posting in iter_postings(data):
            try:
                job = parse_job_posting(posting, scraped_at)
            except Exception as e:
                logger.debug(f"Skipping unparseable JobPosting in block {index}: {e}")
                continue
            if job.is_retainable():
                jobs.append(job)

    if jobs or skipped:
        logger.debug(f"Structured data: {len(jobs)} postings, {skipped} malformed blocks")
    return jobs


def _ld_json_blocks(soup: BeautifulSoup) -> List[str]:
    return [script.string or script.get_text() for script in soup.select(LD_JSON_SELECTOR)]


def extract_jobs_from_html(html: str) -> List[JobRecord]:
    """Collect every embedded ld+json block in a document and extract postings."""
    if not html:
        return []
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        logger.debug(f"Could not parse document for structured data: {e}")
        return []
    return extract_jobs_from_blocks(_ld_json_blocks(soup))


def find_posting_description(soup: BeautifulSoup) -> Optional[Dict[str, str]]:
    """First non-empty JobPosting description in a parsed document, normalized."""
    for block in _ld_json_blocks(soup):
        try:
            data = json.loads(block)
        except (TypeError, ValueError):
            continue
        for posting in iter_postings(data):
            raw = posting.get("description")
            if not isinstance(raw, str) or not raw.strip():
                continue
            if "&lt;" in raw:
                raw = html_module.unescape(raw)
            description = description_from_value(raw)
            if description["html"]:
                return description
    return None
