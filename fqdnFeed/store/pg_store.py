"""PostgreSQL backing store: one JSONB key/value table."""
from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, Optional

import asyncpg
from asyncpg import Pool

from fqdnFeed.errors import StoreError, StoreWriteError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.store.base import config_from_record, empty_entry_document

logger = get_logger("store")

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


SQL_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    key         TEXT PRIMARY KEY,
    value       JSONB NOT NULL,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


SQL_SELECT = "SELECT value FROM {table} WHERE key = $1"


SQL_UPSERT = """
INSERT INTO {table} (key, value, updated_at)
VALUES ($1, $2::jsonb, NOW())
ON CONFLICT (key) DO UPDATE
SET value = EXCLUDED.value, updated_at = NOW()
"""


async def create_pool(dsn: str) -> Pool:
    """Initialize an asyncpg connection pool."""
    sanitized_dsn = dsn.split("@")[-1] if "@" in dsn else "local"
    logger.info(
        f"Creating PostgreSQL connection pool for {sanitized_dsn}",
        extra={"backend": "postgres", "action": "pool_create"},
    )
    try:
        return await asyncpg.create_pool(dsn)
    except Exception as exc:
        logger.error(
            f"Failed to create PostgreSQL pool: {exc}",
            exc_info=True,
            extra={"backend": "postgres", "outcome": "error"},
        )
        raise StoreError(f"PostgreSQL unavailable: {exc}") from exc


def _decode(value: Any) -> Any:
    # asyncpg returns JSONB as text unless a codec is registered
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return None


class PostgresStore:
    """Backing store over an asyncpg pool."""

    backend = "postgres"

    def __init__(self, pool: Pool, table: str = "fqdn_feed"):
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.pool = pool
        self.table = table

    @classmethod
    async def connect(cls, dsn: str, table: str = "fqdn_feed") -> "PostgresStore":
        store = cls(await create_pool(dsn), table)
        await store.ensure_table()
        return store

    async def ensure_table(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(SQL_CREATE_TABLE.format(table=self.table))
        logger.info("Feed table ensured", extra={"action": "table_init", "backend": self.backend})

    async def _fetch(self, key: str) -> Optional[Any]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(SQL_SELECT.format(table=self.table), key)
        if row is None:
            return None
        return _decode(row["value"])

    async def _upsert(self, key: str, value: Dict[str, Any]) -> None:
        start_time = time.time()
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(SQL_UPSERT.format(table=self.table), key, json.dumps(value))
        except Exception as exc:
            logger.error(
                f"Failed to store {key}: {exc}",
                exc_info=True,
                extra={
                    "key": key,
                    "backend": self.backend,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "error",
                },
            )
            raise StoreWriteError(key, str(exc)) from exc
        logger.info(
            "Record stored",
            extra={
                "key": key,
                "backend": self.backend,
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )

    async def get_entry(self, fqdn: str) -> Dict[str, Any]:
        try:
            record = await self._fetch(fqdn)
        except Exception as exc:
            logger.warning(
                f"Entry read failed for {fqdn}, starting empty: {exc}",
                extra={"fqdn": fqdn, "backend": self.backend, "outcome": "error"},
            )
            return empty_entry_document(fqdn)
        if not isinstance(record, dict):
            return empty_entry_document(fqdn)
        return record

    async def put_entry(self, fqdn: str, document: Dict[str, Any]) -> None:
        await self._upsert(fqdn, document)

    async def get_config(self, config_key: str) -> Dict[str, Any]:
        try:
            record = await self._fetch(config_key)
        except Exception as exc:
            logger.error(
                f"Config read failed for {config_key}: {exc}",
                exc_info=True,
                extra={"config_id": config_key, "backend": self.backend, "outcome": "error"},
            )
            raise StoreError(f"Failed to read {config_key!r}: {exc}") from exc
        return config_from_record(config_key, record)

    async def put_config(self, config_key: str, document: Dict[str, Any]) -> Dict[str, Any]:
        await self._upsert(config_key, {"id": config_key, "config": document})
        return document

    async def ping(self) -> bool:
        return await self.pool.fetchval("SELECT 1") == 1

    async def close(self) -> None:
        await self.pool.close()
