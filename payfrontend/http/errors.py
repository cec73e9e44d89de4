"""FastAPI/Starlette error handlers.

- `RouteOutcome` raised by a request step renders its named page.
- UI 404s render the not-found page rather than FastAPI's JSON.
- Unhandled errors render the system error page; outside production the
  traceback is returned as plain text instead.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Final

from fastapi.exception_handlers import http_exception_handler
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import PlainTextResponse

from payfrontend import response_router
from payfrontend.response_router import RouteOutcome, with_analytics_error

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

STATUS_NOT_FOUND: Final[int] = 404


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(getattr(settings, "is_production", True))


async def _render(request: Request, action: str, payload: dict) -> Response:
    # Template rendering is sync; keep it off the event loop.
    return await run_in_threadpool(response_router.response, request, action, payload)


async def _route_outcome_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, RouteOutcome):
        return PlainTextResponse("Internal Server Error", status_code=500)
    return await _render(request, exc.action, exc.payload)


async def _http_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, StarletteHTTPException):
        return PlainTextResponse("Internal Server Error", status_code=500)
    if exc.status_code != STATUS_NOT_FOUND:
        return await http_exception_handler(request, exc)

    try:
        return await _render(request, "NOT_FOUND", with_analytics_error())
    except Exception:  # noqa: BLE001
        logger.exception("Unable to render the not found page")
        return PlainTextResponse("Not Found", status_code=STATUS_NOT_FOUND)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    if not _is_production(request):
        body = "".join(traceback.format_exception(exc))
        return PlainTextResponse(body, status_code=500)

    try:
        return await _render(request, "SYSTEM_ERROR", with_analytics_error())
    except Exception:  # noqa: BLE001
        logger.exception("Unable to render the system error page")
        return PlainTextResponse("Internal Server Error", status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    """Register the page-rendering exception handlers."""
    app.add_exception_handler(RouteOutcome, _route_outcome_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
