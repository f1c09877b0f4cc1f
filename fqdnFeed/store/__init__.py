"""Backing store backends for FQDN entries and configuration documents."""
from __future__ import annotations

from fqdnFeed.config import StoreConfig
from fqdnFeed.logging_config import get_logger
from fqdnFeed.store.base import BackingStore

logger = get_logger("store")


async def build_store(cfg: StoreConfig) -> BackingStore:
    """Instantiate and connect the configured backend."""
    logger.info("Opening backing store", extra={"backend": cfg.backend, "action": "store_open"})
    if cfg.backend == "postgres":
        from fqdnFeed.store.pg_store import PostgresStore

        return await PostgresStore.connect(cfg.pg_dsn, cfg.pg_table)
    if cfg.backend == "redis":
        from fqdnFeed.store.redis_store import RedisStore

        store = RedisStore(cfg.redis_url, key_prefix=cfg.key_prefix)
        await store.connect()
        return store

    from fqdnFeed.store.memory import MemoryStore

    return MemoryStore()
