"""
Run parameters and search URL derivation.
"""

from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlencode

from harvester.contexts.extraction.selectors import SITE_ORIGIN
from harvester.contexts.scraping.errors import InputValidationError
from harvester.utils.helpers import slugify

DEFAULT_MAX_JOBS = 20
MAX_JOBS_LIMIT = 10000

# Filter value meaning "no filter"
ALL_FILTER = "all"

# Input document key -> RunInput field
INPUT_KEYS = {
    "searchUrl": "search_url",
    "searchQuery": "search_query",
    "location": "location",
    "experience": "experience",
    "jobType": "job_type",
    "maxJobs": "max_jobs",
    "proxyUrl": "proxy_url",
    "headless": "headless",
}


@dataclass
class RunInput:
    search_url: str = ""
    search_query: str = ""
    location: str = ""
    experience: str = ""
    job_type: str = ""
    max_jobs: int = DEFAULT_MAX_JOBS
    proxy_url: Optional[str] = None
    headless: bool = True

    @classmethod
    def from_mapping(cls, data: Dict) -> "RunInput":
        """Build from an input document using camelCase keys; unknown keys are ignored."""
        values = {field_name: data[key] for key, field_name in INPUT_KEYS.items() if data.get(key) is not None}
        return cls(**values)

    def validate(self) -> "RunInput":
        """
        Check run parameters before any network activity.

        Raises:
            InputValidationError: Neither a search URL nor a query is given,
                or max_jobs is not an integer in [0, 10000]
        """
        if not (self.search_url or "").strip() and not (self.search_query or "").strip():
            raise InputValidationError('Either provide a "searchUrl" or a "searchQuery"')

        if isinstance(self.max_jobs, bool) or not isinstance(self.max_jobs, int):
            raise InputValidationError(f"maxJobs must be an integer, got {self.max_jobs!r}")
        if not 0 <= self.max_jobs <= MAX_JOBS_LIMIT:
            raise InputValidationError(f"maxJobs must be between 0 and {MAX_JOBS_LIMIT}, got {self.max_jobs}")

        return self


def _is_filter(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != ALL_FILTER


def build_search_url(run_input: RunInput) -> str:
    """
    Search URL for a run.

    A supplied search URL is used verbatim. Otherwise:
    `{origin}/{query}-jobs[-in-{location}][?experience=..&jobType=..]`
    with lower-cased, hyphenated slugs. Empty and "all" filters are omitted.
    """
    if run_input.search_url and run_input.search_url.strip():
        return run_input.search_url.strip()

    path = f"{slugify(run_input.search_query)}-jobs"
    location = slugify(run_input.location)
    if location:
        path += f"-in-{location}"

    params = []
    if _is_filter(run_input.experience):
        params.append(("experience", run_input.experience.strip()))
    if _is_filter(run_input.job_type):
        params.append(("jobType", run_input.job_type.strip()))

    url = f"{SITE_ORIGIN}/{path}"
    return f"{url}?{urlencode(params)}" if params else url
