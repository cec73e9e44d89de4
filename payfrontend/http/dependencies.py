"""FastAPI dependency helpers.

Process-wide components are created in the app lifespan and stored on
`app.state`; these helpers give handlers typed access to them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from payfrontend.expiring_cache import ExpiringCache
from payfrontend.http.settings import AppSettings
from payfrontend.utils.base_client import BaseClient
from payfrontend.utils.correlation_header import CORRELATION_HEADER

if TYPE_CHECKING:
    from starlette.requests import Request

TDependency = TypeVar("TDependency")


class DependencyNotInitializedError(RuntimeError):
    """Raised when an app dependency is missing from app state."""

    def __init__(self, dependency: str) -> None:
        """Create a DependencyNotInitializedError for the given dependency name."""
        message = f"{dependency} not initialized"
        super().__init__(message)


def _require_dependency(
    request: Request,
    name: str,
    kind: type[TDependency],
) -> TDependency:
    value = getattr(request.app.state, name, None)
    if value is None or not isinstance(value, kind):
        raise DependencyNotInitializedError(kind.__name__)
    return value


def get_settings(request: Request) -> AppSettings:
    """Return the process settings."""
    return _require_dependency(request, "settings", AppSettings)


def get_base_client(request: Request) -> BaseClient:
    """Return the shared outbound HTTP client."""
    return _require_dependency(request, "base_client", BaseClient)


def get_service_cache(request: Request) -> ExpiringCache:
    """Return the process-wide service metadata cache."""
    return _require_dependency(request, "service_cache", ExpiringCache)


def get_correlation_id(request: Request) -> str | None:
    """Return the inbound correlation id, if any."""
    return request.headers.get(CORRELATION_HEADER) or None
