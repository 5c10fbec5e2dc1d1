"""
Data storage domain.

Persists job record batches, run statistics and debug page dumps to the
local filesystem or PostgreSQL.

Public API exports only the interfaces needed by other contexts.
"""

from harvester.contexts.storage.config import (
    PostgresConfig,
    StorageConfig,
)
from harvester.contexts.storage.store import (
    HTML_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    RecordStore,
)
from harvester.contexts.storage.local import LocalRecordStore
from harvester.contexts.storage.getter import get_record_store

__all__ = [
    # Factory function (primary interface)
    "get_record_store",
    # Generic interfaces
    "RecordStore",
    "StorageConfig",
    "PostgresConfig",
    "LocalRecordStore",
    # Content types
    "HTML_CONTENT_TYPE",
    "JSON_CONTENT_TYPE",
]
