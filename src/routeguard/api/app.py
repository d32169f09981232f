"""
routeguard.api.app

FastAPI app factory for the routeguard service.

Responsibilities:
- Build the FastAPI application and register middleware/health routes.
- Register handler groups on a `Dispatcher` and mount their routes.
- Initialize auth providers on startup; close the shared HTTP client on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from routeguard import __version__
from routeguard.api.routers.health import router as health_router
from routeguard.auth.registry import ProviderRegistry
from routeguard.dispatch.dispatcher import Dispatcher
from routeguard.observability.logging import configure_logging, get_logger
from routeguard.observability.middleware import RequestContextMiddleware
from routeguard.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    handler_groups: Iterable[object | tuple[str, object]] = (),
    http: httpx.AsyncClient | None = None,
) -> FastAPI:
    """
    `handler_groups` items are either a group instance or a `(prefix, group)` pair.
    """
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    owns_http = http is None
    client = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    registry = ProviderRegistry(provider_settings=settings.auth_providers, http=client)
    dispatcher = Dispatcher(registry)
    for item in handler_groups:
        prefix, group = item if isinstance(item, tuple) else ("", item)
        dispatcher.register(group, prefix=prefix)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        try:
            # InitializationError propagates: the process must not serve with a broken provider.
            await dispatcher.startup()
            yield
        finally:
            # Only close a client this factory created.
            if owns_http:
                await client.aclose()
            log.info("shutdown")

    app = FastAPI(
        title="routeguard",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.http = client
    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    dispatcher.mount(app)
    return app


# --- Module Notes -----------------------------------------------------------
# Provider initialization runs in the lifespan startup, so an unreachable identity
# authority fails the process before it accepts traffic.
