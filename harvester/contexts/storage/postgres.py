"""
PostgreSQL record store.

Record batches are appended with pandas `DataFrame.to_sql` through a
SQLAlchemy engine; key-value slots live in a small table managed with
psycopg2 directly.
"""

import json
from typing import Any, Dict, List, Optional

import pandas as pd
import psycopg2
from loguru import logger
from psycopg2 import sql
from sqlalchemy import create_engine

from harvester.contexts.extraction.schema import OUTPUT_KEYS
from harvester.contexts.storage.config import PostgresConfig
from harvester.contexts.storage.store import HTML_CONTENT_TYPE, JSON_CONTENT_TYPE, RecordStore

RECORD_COLUMNS = list(OUTPUT_KEYS.values())


def db_exists(config: PostgresConfig) -> bool:
    """Check whether the configured database exists on the server."""
    conn = psycopg2.connect(
        database="postgres",
        user=config.user,
        password=config.password,
        host=config.host,
        port=config.port,
    )
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM pg_database WHERE datname = %s;", (config.name,))
    fetched = cursor.fetchone()
    conn.close()
    return fetched is not None


def create_db(config: PostgresConfig) -> None:
    conn = psycopg2.connect(
        database="postgres",
        user=config.user,
        password=config.password,
        host=config.host,
        port=config.port,
    )
    conn.autocommit = True
    cursor = conn.cursor()
    cursor.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(config.name)))
    conn.close()
    logger.info(f"Database named '{config.name}' created successfully")


def records_to_df(records: List[Dict]) -> pd.DataFrame:
    """
    Frame with one column per output key, in a fixed order.

    Keys missing from a record become nulls, so batches with and without
    enrichment-only fields append to the same table. Tag lists are stored
    as JSON text.
    """
    df = pd.DataFrame(records).reindex(columns=RECORD_COLUMNS)
    df["tags"] = df["tags"].map(lambda tags: json.dumps(tags) if isinstance(tags, list) else None)
    return df


class PostgresRecordStore(RecordStore):
    def __init__(self, config: PostgresConfig):
        self.config = config
        self.engine = create_engine(config.connection_string)
        self._ensure_key_value_table()

    @classmethod
    def from_config(cls, config: PostgresConfig, ensure_exists: bool = False) -> "PostgresRecordStore":
        if ensure_exists and not db_exists(config):
            create_db(config)
        return cls(config)

    def connect(self):
        """Create a new PostgreSQL database connection."""
        return psycopg2.connect(
            dbname=self.config.name,
            host=self.config.host,
            user=self.config.user,
            port=self.config.port,
            password=self.config.password,
        )

    def _ensure_key_value_table(self) -> None:
        query = sql.SQL(
            "CREATE TABLE IF NOT EXISTS {} (key TEXT PRIMARY KEY, value TEXT, content_type TEXT);"
        ).format(sql.Identifier(self.config.key_value_table))
        conn = self.connect()
        with conn, conn.cursor() as cur:
            cur.execute(query)
        conn.close()

    def push_records(self, records: List[Dict]) -> None:
        if not records:
            return
        records_to_df(records).to_sql(self.config.table, self.engine, if_exists="append", index=False)
        logger.debug(f"Appended {len(records)} records to {self.config.name}.{self.config.table}")

    def set_value(self, key: str, value: Any, content_type: Optional[str] = None) -> None:
        content_type = content_type or JSON_CONTENT_TYPE
        text = str(value) if content_type == HTML_CONTENT_TYPE else json.dumps(value)
        query = sql.SQL(
            "INSERT INTO {} (key, value, content_type) VALUES (%s, %s, %s) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, content_type = EXCLUDED.content_type;"
        ).format(sql.Identifier(self.config.key_value_table))
        conn = self.connect()
        with conn, conn.cursor() as cur:
            cur.execute(query, (key, text, content_type))
        conn.close()

    def get_value(self, key: str) -> Any:
        query = sql.SQL("SELECT value, content_type FROM {} WHERE key = %s;").format(
            sql.Identifier(self.config.key_value_table)
        )
        conn = self.connect()
        with conn, conn.cursor() as cur:
            cur.execute(query, (key,))
            row = cur.fetchone()
        conn.close()

        if row is None:
            return None
        value, content_type = row
        return value if content_type == HTML_CONTENT_TYPE else json.loads(value)
