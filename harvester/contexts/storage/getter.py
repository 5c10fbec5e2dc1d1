from harvester.contexts.storage.config import StorageConfig
from harvester.contexts.storage.local import LocalRecordStore
from harvester.contexts.storage.postgres import PostgresRecordStore
from harvester.contexts.storage.store import RecordStore

ALLOWED_BACKENDS = ["local", "postgres"]


def get_record_store(config: StorageConfig = None, ensure_exists: bool = True) -> RecordStore:
    """
    Factory function to create the RecordStore for the configured backend.

    Args:
        config: StorageConfig; read from the environment (STORAGE_BACKEND) when omitted
        ensure_exists: For postgres, create the database if it doesn't exist

    Returns:
        RecordStore implementation for the configured backend

    Raises:
        ValueError: If the backend is unsupported
    """
    config = config or StorageConfig.from_env()
    backend = (config.backend or "").lower()

    if backend == "local":
        return LocalRecordStore(config)
    elif backend == "postgres":
        if config.postgres is None:
            raise ValueError("The postgres backend needs POSTGRES_* settings")
        return PostgresRecordStore.from_config(config.postgres, ensure_exists=ensure_exists)
    else:
        raise ValueError(
            f"Unsupported storage backend: '{config.backend}'. "
            f"Supported backends: {', '.join(ALLOWED_BACKENDS)}"
        )
