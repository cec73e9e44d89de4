"""Starlette middleware for request-wide locals.

Each class is a plain ASGI middleware so ordering stays explicit in
`payfrontend.app.create_app`.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from starlette.datastructures import MutableHeaders

from payfrontend.http.jinja import ASSET_PATH
from payfrontend.utils.correlation_header import CORRELATION_HEADER

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from payfrontend.http.settings import AppSettings

logger = logging.getLogger(__name__)


def _header(scope: Scope, name: str) -> str | None:
    key = name.lower().encode("latin-1")
    for header_name, value in scope.get("headers") or []:
        if header_name.lower() == key:
            return value.decode("latin-1")
    return None


class CorrelationIdMiddleware:
    """Guarantee every request carries a correlation id.

    A missing `x-request-id` is generated and added to the request headers so
    handlers and downstream calls see the same value. The id is echoed on the
    response.
    """

    def __init__(self, app: ASGIApp) -> None:
        """Store the downstream ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Stamp the correlation id on the request and response."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _header(scope, CORRELATION_HEADER)
        if not correlation_id:
            correlation_id = uuid.uuid4().hex
            scope["headers"] = [
                *(scope.get("headers") or []),
                (CORRELATION_HEADER.encode("latin-1"), correlation_id.encode("latin-1")),
            ]
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                if CORRELATION_HEADER not in headers:
                    headers.append(CORRELATION_HEADER, correlation_id)
            await send(message)

        await self.app(scope, receive, send_wrapper)


class LocalsMiddleware:
    """Attach template locals (asset path, analytics id) to request state."""

    def __init__(self, app: ASGIApp, *, settings: AppSettings) -> None:
        """Store the downstream ASGI app and resolve the analytics id once."""
        self.app = app
        if settings.analytics_tracking_id is None:
            logger.warning(
                "Google Analytics Tracking ID [ANALYTICS_TRACKING_ID] is not set"
            )
        self.analytics_tracking_id = settings.analytics_tracking_id or ""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Set `asset_path` and `analytics_tracking_id` on request state."""
        if scope.get("type") == "http":
            state = scope.setdefault("state", {})
            state["asset_path"] = ASSET_PATH
            state["analytics_tracking_id"] = self.analytics_tracking_id
        await self.app(scope, receive, send)
