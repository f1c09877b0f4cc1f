"""In-process backing store for development runs and tests."""
from __future__ import annotations

import json
from typing import Any, Dict

from fqdnFeed.store.base import config_from_record, empty_entry_document


class MemoryStore:
    """Dict-backed store; values are JSON round-tripped like a real backend."""

    backend = "memory"

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def _read(self, key: str) -> Any:
        raw = self._items.get(key)
        return None if raw is None else json.loads(raw)

    def _write(self, key: str, value: Dict[str, Any]) -> None:
        self._items[key] = json.dumps(value)

    async def get_entry(self, fqdn: str) -> Dict[str, Any]:
        record = self._read(fqdn)
        if not isinstance(record, dict):
            return empty_entry_document(fqdn)
        return record

    async def put_entry(self, fqdn: str, document: Dict[str, Any]) -> None:
        self._write(fqdn, document)

    async def get_config(self, config_key: str) -> Dict[str, Any]:
        return config_from_record(config_key, self._read(config_key))

    async def put_config(self, config_key: str, document: Dict[str, Any]) -> Dict[str, Any]:
        self._write(config_key, {"id": config_key, "config": document})
        return document

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
