"""
General utility functions for the harvester.

Contains helper functions used across different modules.
"""

import os
from pathlib import Path
from typing import Union

from dotenv import load_dotenv

# Load environment variables
load_dotenv()
PROJECT_ROOT = Path(os.getenv("PROJECT_ROOT", Path(__file__).resolve().parents[2]))


def slugify(value: str) -> str:
    """
    Turn a free-text search term into a URL path slug.

    Lower-cases, trims and collapses whitespace runs into single hyphens.

    Example:
        >>> slugify("  Data   Analyst ")
        "data-analyst"
    """
    if not value:
        return ""
    return "-".join(value.lower().split())


def relative_to_project(path: Union[str, Path]) -> str:
    path = str(Path(path))
    proj_root_str = str(PROJECT_ROOT)

    if proj_root_str.endswith("/"):
        proj_root_str = proj_root_str[:-1]

    # Remove project root part of path to make it relative
    return path.replace(proj_root_str + "/", "")
