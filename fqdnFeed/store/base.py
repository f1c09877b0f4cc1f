"""Backing store interface and document helpers shared by the backends.

Two kinds of records live in the same key space:

* FQDN entries, keyed by the FQDN:
  ``{"id": fqdn, "ipv4": {addr: valid_until}, "ipv6": {...}}``
* configuration documents, keyed by ``cfg:<feed>``:
  ``{"id": "cfg:<feed>", "config": {...}}``
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Optional, Protocol

from fqdnFeed.errors import ConfigNotFoundError, InvalidConfigError


CONFIG_PREFIX = "cfg:"


def config_id(feed: str) -> str:
    return f"{CONFIG_PREFIX}{feed}"


def empty_entry_document(fqdn: str) -> Dict[str, Any]:
    return {"id": fqdn, "ipv4": {}, "ipv6": {}}


def config_from_record(config_key: str, record: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Extract the nested configuration object from a stored record."""
    if record is None:
        raise ConfigNotFoundError(config_key)
    if not isinstance(record, Mapping) or not isinstance(record.get("config"), dict):
        raise InvalidConfigError(f"Invalid config {config_key!r} in the data store")
    return copy.deepcopy(record["config"])


class BackingStore(Protocol):
    """Key-value persistence for FQDN entries and configuration documents."""

    backend: str

    async def get_entry(self, fqdn: str) -> Dict[str, Any]:
        """Stored entry for ``fqdn``; an empty pair on miss or read failure."""
        ...

    async def put_entry(self, fqdn: str, document: Dict[str, Any]) -> None:
        """Persist an entry; raises StoreWriteError on failure."""
        ...

    async def get_config(self, config_key: str) -> Dict[str, Any]:
        """Configuration tree; ConfigNotFoundError / InvalidConfigError on failure."""
        ...

    async def put_config(self, config_key: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Store a configuration tree and echo it back."""
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...
