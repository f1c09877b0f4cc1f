"""Redis backing store: JSON documents under prefixed string keys."""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

import redis.asyncio as aioredis

from fqdnFeed.errors import StoreError, StoreWriteError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.store.base import config_from_record, empty_entry_document

logger = get_logger("store")


class RedisStore:
    """Backing store using plain Redis string keys."""

    backend = "redis"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        key_prefix: str = "fqdnFeed:",
        client: Optional[aioredis.Redis] = None,
    ):
        self.redis_url = redis_url or os.getenv("FQDNFEED_REDIS_URL", "redis://localhost:6379/0")
        self.key_prefix = key_prefix
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def connect(self) -> aioredis.Redis:
        if self._client is None:
            try:
                self._client = aioredis.from_url(self.redis_url, decode_responses=True)
                await self._client.ping()
                logger.info(
                    "Connected to Redis store",
                    extra={"backend": self.backend, "outcome": "success"},
                )
            except Exception as exc:
                self._client = None
                logger.error(
                    f"Failed to connect to Redis: {exc}",
                    extra={
                        "backend": self.backend,
                        "outcome": "error",
                        "error_type": type(exc).__name__,
                    },
                )
                raise StoreError(f"Redis unavailable: {exc}") from exc
        return self._client

    async def _read(self, key: str) -> Any:
        client = await self.connect()
        payload = await client.get(self._key(key))
        if payload is None:
            return None
        return json.loads(payload)

    async def _write(self, key: str, value: Dict[str, Any]) -> None:
        try:
            client = await self.connect()
            await client.set(self._key(key), json.dumps(value))
        except Exception as exc:
            logger.error(
                f"Failed to store {key}: {exc}",
                exc_info=True,
                extra={"key": key, "backend": self.backend, "outcome": "error"},
            )
            raise StoreWriteError(key, str(exc)) from exc
        logger.info(
            "Record stored",
            extra={"key": key, "backend": self.backend, "outcome": "success"},
        )

    async def get_entry(self, fqdn: str) -> Dict[str, Any]:
        try:
            record = await self._read(fqdn)
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
        await self._write(fqdn, document)

    async def get_config(self, config_key: str) -> Dict[str, Any]:
        try:
            record = await self._read(config_key)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Failed to read {config_key!r}: {exc}") from exc
        return config_from_record(config_key, record)

    async def put_config(self, config_key: str, document: Dict[str, Any]) -> Dict[str, Any]:
        await self._write(config_key, {"id": config_key, "config": document})
        return document

    async def ping(self) -> bool:
        client = await self.connect()
        return bool(await client.ping())

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("Redis store connection closed", extra={"outcome": "success"})
            finally:
                self._client = None
