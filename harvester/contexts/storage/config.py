"""
Storage configuration for the harvester.

Handles loading the backend choice, local output paths and PostgreSQL
credentials from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_BACKEND = "local"
DEFAULT_STORAGE_PATH = "outs/storage"
DEFAULT_DATASET = "jobs"


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "harvester"
    table: str = "jobs"
    key_value_table: str = "key_value"

    def __post_init__(self):
        if not self.name:
            raise ValueError("Database name is required")

    @classmethod
    def from_env(cls, table: str = "jobs") -> "PostgresConfig":
        """Create PostgresConfig from POSTGRES_* environment variables."""
        env_keys = ["host", "port", "user", "password"]
        settings = {key: os.getenv(f"POSTGRES_{key.upper()}") for key in env_keys}
        settings = {key: value for key, value in settings.items() if value is not None}

        # Cast port to int
        if "port" in settings:
            settings["port"] = int(settings["port"])

        return cls(name=os.getenv("POSTGRES_DB", "harvester"), table=table, **settings)

    @property
    def connection_string(self) -> str:
        """Generate PostgreSQL connection string."""
        return f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


@dataclass
class StorageConfig:
    """Where and how one run persists its records, statistics and debug dumps."""

    backend: str = DEFAULT_BACKEND
    path: Path = Path(DEFAULT_STORAGE_PATH)
    dataset: str = DEFAULT_DATASET
    postgres: Optional[PostgresConfig] = field(default=None, repr=False)

    @classmethod
    def from_env(cls, dataset: str = DEFAULT_DATASET) -> "StorageConfig":
        """Read STORAGE_BACKEND and STORAGE_PATH (plus POSTGRES_* for the postgres backend)."""
        backend = os.getenv("STORAGE_BACKEND", DEFAULT_BACKEND).lower()
        postgres = PostgresConfig.from_env(table=dataset) if backend == "postgres" else None
        return cls(
            backend=backend,
            path=Path(os.getenv("STORAGE_PATH", DEFAULT_STORAGE_PATH)),
            dataset=dataset,
            postgres=postgres,
        )
