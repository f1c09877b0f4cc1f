"""Configuration entry point: read or replace a feed template."""
from __future__ import annotations

import hmac
import json
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from fqdnFeed.api.models import failure
from fqdnFeed.api.utils.deps import registry_dep, settings_dep
from fqdnFeed.config import FeedServiceConfig
from fqdnFeed.errors import FqdnFeedError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.service import ServiceRegistry
from fqdnFeed.store.base import config_id

logger = get_logger("api")
router = APIRouter(prefix="/feeds", tags=["config"])


def _check_key(key: Optional[str], settings: FeedServiceConfig) -> Optional[Response]:
    secret = settings.api.secret
    if not secret:
        return failure('"secret" setting not set.')
    if key is None or not hmac.compare_digest(key.encode(), secret.encode()):
        return failure("Invalid or missing key", status_code=403)
    return None


@router.get("/{name}/config")
async def get_config(
    name: str,
    key: Optional[str] = Query(None),
    registry: ServiceRegistry = Depends(registry_dep),
    settings: FeedServiceConfig = Depends(settings_dep),
) -> Response:
    """Return the stored template."""
    rejected = _check_key(key, settings)
    if rejected is not None:
        return rejected
    try:
        document = await registry.get_config_document(config_id(name))
    except FqdnFeedError as exc:
        logger.warning(
            f"Config fetch failed: {exc}",
            extra={"config_id": config_id(name), "outcome": "error", "error_type": type(exc).__name__},
        )
        return failure(str(exc))
    return JSONResponse(document)


@router.post("/{name}/config")
async def replace_config(
    name: str,
    request: Request,
    key: Optional[str] = Query(None),
    registry: ServiceRegistry = Depends(registry_dep),
    settings: FeedServiceConfig = Depends(settings_dep),
) -> Response:
    """Replace the template; the body must be a JSON object."""
    rejected = _check_key(key, settings)
    if rejected is not None:
        return rejected

    body = await request.body()
    if not body:
        return failure("Null body in POST request.")
    try:
        document = json.loads(body)
    except ValueError:
        return failure("Error parsing JSON configuration content.")

    try:
        stored = await registry.replace_config_document(config_id(name), document)
    except FqdnFeedError as exc:
        logger.warning(
            f"Config replace failed: {exc}",
            extra={"config_id": config_id(name), "outcome": "error", "error_type": type(exc).__name__},
        )
        return failure(str(exc))
    return JSONResponse(stored)
