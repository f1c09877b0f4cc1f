"""Address feed endpoint."""
from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from fqdnFeed.api.models import failure
from fqdnFeed.api.utils.deps import registry_dep, settings_dep
from fqdnFeed.config import FeedServiceConfig
from fqdnFeed.errors import FqdnFeedError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.freshness import parse_span
from fqdnFeed.resolver.models import AddressFamily
from fqdnFeed.resolver.service import ServiceRegistry
from fqdnFeed.store.base import config_id

logger = get_logger("api")
router = APIRouter(prefix="/feeds", tags=["feeds"])


@router.get("/{name}")
async def get_feed(
    name: str,
    request: Request,
    span: Optional[str] = Query(None, description="Trailing window in seconds"),
    v: Optional[str] = Query(None, description="ipv4 or ipv6 for a plain address list"),
    registry: ServiceRegistry = Depends(registry_dep),
    settings: FeedServiceConfig = Depends(settings_dep),
) -> Response:
    """
    Resolve the feed template.

    With no query string at all, or ``v=ipv4``, the flattened IPv4 list is
    returned one address per line; ``v=ipv6`` returns the IPv6 list. Any other
    query yields the rewritten template as JSON.
    """
    span_seconds = parse_span(span, settings.feed.default_span_seconds)
    cfg_id = config_id(name)

    async def resolve_feed():
        service = await registry.get_service(cfg_id)
        return await service.run(span_seconds)

    try:
        result = await asyncio.wait_for(
            resolve_feed(),
            timeout=settings.feed.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(
            "Resolution pass exceeded its deadline",
            extra={"config_id": cfg_id, "span": span_seconds, "outcome": "timeout"},
        )
        return failure("Resolution deadline exceeded")
    except FqdnFeedError as exc:
        logger.error(
            f"Feed request failed: {exc}",
            extra={"config_id": cfg_id, "outcome": "error", "error_type": type(exc).__name__},
        )
        return failure(str(exc))

    if not request.query_params or v == AddressFamily.IPV4.value:
        return PlainTextResponse(result.buffer.plain(AddressFamily.IPV4))
    if v == AddressFamily.IPV6.value:
        return PlainTextResponse(result.buffer.plain(AddressFamily.IPV6))
    return JSONResponse(result.document)
