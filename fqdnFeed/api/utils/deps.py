"""Request-scoped access to the resources created at application startup.

Everything lives on ``app.state``; nothing here is a module-level global, so
each app instance (and each test) gets its own ledger cache.
"""
from __future__ import annotations

from fastapi import HTTPException, Request, status

from fqdnFeed.config import FeedServiceConfig
from fqdnFeed.resolver.service import ServiceRegistry
from fqdnFeed.store.base import BackingStore


def registry_dep(request: Request) -> ServiceRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Backing store unavailable")
    return registry


def store_dep(request: Request) -> BackingStore:
    return registry_dep(request).store


def settings_dep(request: Request) -> FeedServiceConfig:
    return request.app.state.settings
