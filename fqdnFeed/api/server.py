"""FastAPI application entrypoint for the fqdnFeed API."""
from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request, Response

from fqdnFeed.api.routes import feed, feed_config, health
from fqdnFeed.config import FeedServiceConfig, load_settings
from fqdnFeed.errors import StoreError
from fqdnFeed.logging_config import reset_request_id, sanitize_log_data, set_request_id, setup_logging
from fqdnFeed.resolver.dns_lookup import DNSResolver, FamilyResolver
from fqdnFeed.resolver.service import ServiceRegistry
from fqdnFeed.store import build_store
from fqdnFeed.store.base import BackingStore

logger = setup_logging("api")


def create_app(
    settings: Optional[FeedServiceConfig] = None,
    *,
    store: Optional[BackingStore] = None,
    resolver: Optional[FamilyResolver] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Build the API application.

    The store and resolver are created at startup from ``settings`` unless
    given. One ServiceRegistry (and so one ledger cache) lives for the
    lifetime of the app.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting fqdnFeed API", extra={"state": "startup"})
        backing = store
        if backing is None:
            try:
                backing = await build_store(settings.store)
            except StoreError as exc:
                # Serve 503s until restarted rather than refusing to boot
                logger.warning(f"Backing store init failed: {exc}", extra={"state": "degraded"})
        if backing is not None:
            app.state.registry = ServiceRegistry(
                backing,
                resolver or DNSResolver(
                    timeout=settings.dns.timeout_seconds,
                    nameservers=settings.dns.nameservers,
                ),
                default_ttl=settings.feed.default_ttl_seconds,
                clock=clock,
            )
        logger.info("API startup complete", extra={"state": "ready"})
        try:
            yield
        finally:
            logger.info("Shutting down fqdnFeed API", extra={"state": "shutdown"})
            if backing is not None and store is None:
                await backing.close()
            app.state.registry = None

    app = FastAPI(title="fqdnFeed-api", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = None

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable) -> Response:
        """Log all HTTP requests with timing and outcome."""
        request_id = str(uuid.uuid4())
        token = set_request_id(request_id)
        start_time = time.time()

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": sanitize_log_data(dict(request.query_params)),
            },
        )
        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "success" if response.status_code < 400 else "error",
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as exc:
            logger.error(
                f"Request failed: {exc}",
                exc_info=True,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration": round((time.time() - start_time) * 1000, 2),
                    "outcome": "exception",
                    "error_type": type(exc).__name__,
                },
            )
            raise
        finally:
            reset_request_id(token)

    app.include_router(feed.router)
    app.include_router(feed_config.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        return {"status": "ok", "service": "fqdnFeed-api"}

    return app


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.api.host,
        port=port or settings.api.port,
    )


if __name__ == "__main__":
    run()
