"""Per-feed resolution service and the registry that hosts them."""
from __future__ import annotations

import asyncio
import copy
import time
from typing import Any, Callable, Dict, Optional

from fqdnFeed.errors import InvalidConfigError
from fqdnFeed.logging_config import get_logger
from fqdnFeed.resolver.dns_lookup import FamilyResolver
from fqdnFeed.resolver.freshness import DEFAULT_SPAN, DEFAULT_TTL
from fqdnFeed.resolver.ledger import LedgerCache
from fqdnFeed.resolver.merger import ResolutionMerger
from fqdnFeed.resolver.models import FeedResult, ResponseBuffer
from fqdnFeed.resolver.walker import ConfigWalker
from fqdnFeed.store.base import BackingStore

logger = get_logger("resolver")

Clock = Callable[[], float]


class ResolutionService:
    """One configuration template plus the buffer of its last pass."""

    def __init__(
        self,
        config_id: str,
        service_config: Dict[str, Any],
        merger: ResolutionMerger,
        *,
        clock: Clock = time.time,
    ):
        self.config_id = config_id
        self.service_config = service_config
        self.merger = merger
        self.clock = clock
        self.response_buffer = ResponseBuffer()

    async def process(self, span: int = DEFAULT_SPAN) -> Any:
        """Resolve the template and return the rewritten copy."""
        result = await self.run(span)
        return result.document

    async def run(self, span: int = DEFAULT_SPAN) -> FeedResult:
        """Resolve every request leaf of a copy of the template.

        "now" is read once; every freshness decision of the pass uses it.
        The returned buffer belongs to this pass even if another pass on the
        same service starts meanwhile. A failed pass leaves an empty buffer.
        """
        now = int(self.clock())
        start_time = time.time()
        buffer = ResponseBuffer()
        self.response_buffer = buffer
        walker = ConfigWalker(self.merger.resolve, buffer)
        try:
            document = await walker.walk_copy(self.service_config, span, now)
        except asyncio.CancelledError:
            self._discard(buffer)
            raise
        except Exception as exc:
            self._discard(buffer)
            logger.error(
                f"Resolution pass failed for {self.config_id}: {exc}",
                extra={
                    "config_id": self.config_id,
                    "span": span,
                    "outcome": "error",
                    "error_type": type(exc).__name__,
                },
            )
            raise
        logger.info(
            "Resolution pass completed",
            extra={
                "config_id": self.config_id,
                "span": span,
                "ipv4_count": len(buffer.ipv4),
                "ipv6_count": len(buffer.ipv6),
                "duration": round((time.time() - start_time) * 1000, 2),
                "outcome": "success",
            },
        )
        return FeedResult(document, buffer)

    def _discard(self, buffer: ResponseBuffer) -> None:
        if self.response_buffer is buffer:
            self.response_buffer = ResponseBuffer()

    def replace_config(self, new_config: Dict[str, Any]) -> None:
        """Swap the template; the ledger cache is left alone."""
        self.service_config = new_config


class ServiceRegistry:
    """Owns the shared ledger cache and one ResolutionService per config id."""

    def __init__(
        self,
        store: BackingStore,
        resolver: FamilyResolver,
        *,
        cache: Optional[LedgerCache] = None,
        default_ttl: int = DEFAULT_TTL,
        clock: Clock = time.time,
    ):
        self.store = store
        self.cache = cache if cache is not None else LedgerCache()
        self.merger = ResolutionMerger(self.cache, store, resolver, default_ttl=default_ttl)
        self.clock = clock
        self._services: Dict[str, ResolutionService] = {}

    def _register(self, config_id: str, document: Dict[str, Any]) -> ResolutionService:
        service = ResolutionService(config_id, document, self.merger, clock=self.clock)
        self._services[config_id] = service
        return service

    async def get_service(self, config_id: str) -> ResolutionService:
        service = self._services.get(config_id)
        if service is None:
            document = await self.store.get_config(config_id)
            service = self._services.get(config_id) or self._register(config_id, document)
            logger.info(
                "Feed service loaded",
                extra={"config_id": config_id, "action": "service_load"},
            )
        return service

    async def get_config_document(self, config_id: str) -> Dict[str, Any]:
        return await self.store.get_config(config_id)

    async def replace_config_document(self, config_id: str, document: Any) -> Dict[str, Any]:
        if not isinstance(document, dict):
            raise InvalidConfigError("Configuration provided is not a JSON object")
        stored = await self.store.put_config(config_id, document)
        service = self._services.get(config_id)
        if service is not None:
            service.replace_config(copy.deepcopy(document))
        else:
            self._register(config_id, copy.deepcopy(document))
        logger.info(
            "Feed configuration replaced",
            extra={"config_id": config_id, "action": "config_replace", "outcome": "success"},
        )
        return stored
