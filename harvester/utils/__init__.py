"""
Shared utility functions.
"""

from harvester.utils.config_helpers import merge_configs, load_fetch_config
from harvester.utils.helpers import slugify, relative_to_project
from harvester.utils.text_processing import (
    clean_text,
    collapse_blank_lines,
    contains_any,
)

__all__ = [
    # Misc utilities
    "relative_to_project",
    "slugify",
    # Text processing
    "clean_text",
    "collapse_blank_lines",
    "contains_any",
    # Configuration utilities
    "merge_configs",
    "load_fetch_config",
]
