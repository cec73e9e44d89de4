"""FastAPI ASGI application factory and runtime wiring.

This module provides the production entrypoint
``uvicorn payfrontend.app:app`` and owns application-level orchestration:

- settings are read once and shared with every component,
- lifespan startup/shutdown around the shared outbound client and the
  service metadata cache,
- middleware and error-handler installation,
- static mount and router registration.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Protocol, cast

from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from starlette.staticfiles import StaticFiles

from payfrontend.expiring_cache import ExpiringCache
from payfrontend.http.cookie_session import (
    DEFAULT_SAMESITE,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE_SECONDS,
    session_secret_key,
)
from payfrontend.http.errors import install_error_handlers
from payfrontend.http.jinja import ASSET_PATH
from payfrontend.http.middleware import CorrelationIdMiddleware, LocalsMiddleware
from payfrontend.http.session_middleware import FrontendSessionMiddleware
from payfrontend.http.settings import AppSettings, default_static_dir
from payfrontend.utils.base_client import BaseClient
from payfrontend.utils.tracing import TraceContextMiddleware
from payfrontend.views import router as views_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.types import ASGIApp


logger = logging.getLogger(__name__)


class MiddlewareFactory(Protocol):
    def __call__(self, app: ASGIApp, /, *args: object, **kwargs: object) -> ASGIApp: ...


def create_app(
    settings: AppSettings | None = None,
    *,
    base_client: BaseClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or AppSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = base_client or BaseClient(settings)
        app.state.base_client = client
        try:
            yield
        finally:
            try:
                client.close()
            except Exception:
                logger.exception("Shutdown: error closing outbound connections")

    app = FastAPI(
        lifespan=lifespan,
        openapi_url=None,
        debug=False,
    )
    app.state.settings = settings
    app.state.service_cache = ExpiringCache()
    if base_client is not None:
        app.state.base_client = base_client

    install_error_handlers(app)

    # Last added runs first: sessions, then trace/correlation ids, then locals.
    app.add_middleware(cast("MiddlewareFactory", LocalsMiddleware), settings=settings)
    app.add_middleware(cast("MiddlewareFactory", TraceContextMiddleware))
    app.add_middleware(cast("MiddlewareFactory", CorrelationIdMiddleware))
    app.add_middleware(
        cast("MiddlewareFactory", FrontendSessionMiddleware),
        secret_key=session_secret_key,
        session_cookie=SESSION_COOKIE_NAME,
        max_age=SESSION_MAX_AGE_SECONDS,
        same_site=DEFAULT_SAMESITE,
        https_only=settings.is_production,
    )

    app.mount(
        ASSET_PATH.rstrip("/"),
        StaticFiles(directory=str(default_static_dir())),
        name="public",
    )

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon() -> RedirectResponse:
        return RedirectResponse(url=f"{ASSET_PATH}images/favicon.svg", status_code=301)

    app.include_router(views_router)

    return app


app = create_app()


__all__ = [
    "app",
    "create_app",
]
