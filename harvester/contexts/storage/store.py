"""
Generic record store interface.

A run writes three kinds of output: batches of job records (append-only),
the run statistics, and optional debug page dumps (both key-value).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

JSON_CONTENT_TYPE = "application/json"
HTML_CONTENT_TYPE = "text/html"


class RecordStore(ABC):
    """
    Abstract base class for output backends.

    Implementations are synchronous; async callers run them in a worker thread.
    """

    @abstractmethod
    def push_records(self, records: List[Dict]) -> None:
        """
        Append a batch of output records.

        Args:
            records: Record dicts (camelCase keys), persisted in list order
        """
        pass

    @abstractmethod
    def set_value(self, key: str, value: Any, content_type: Optional[str] = None) -> None:
        """
        Store a named value, replacing any previous value under the key.

        Args:
            key: Slot name (e.g. "statistics", "DEBUG_PAGE_HTML")
            value: A JSON-serializable object, or text
            content_type: HTML_CONTENT_TYPE for markup; JSON otherwise
        """
        pass

    @abstractmethod
    def get_value(self, key: str) -> Any:
        """Stored value for key, or None."""
        pass
