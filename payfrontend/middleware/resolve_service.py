"""Attach the merchant's service metadata to the request.

The step runs after the charge has been loaded. Service metadata is cached
per gateway account for `SERVICE_CACHE_MAX_AGE` milliseconds. A failed fetch
is logged and the request carries on without `request.state.service`:
templates treat the service as optional.

Concurrent misses for the same account are not coalesced; each performs its
own fetch and the last one to finish wins the cache slot.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from payfrontend.http.dependencies import (
    get_base_client,
    get_correlation_id,
    get_service_cache,
    get_settings,
)
from payfrontend.response_router import RouteOutcome, with_analytics_error
from payfrontend.services.clients.adminusers_client import get_admin_users_client
from payfrontend.utils.tracing import trace_context_from_request

if TYPE_CHECKING:
    from collections.abc import Callable

    from payfrontend.expiring_cache import ExpiringCache
    from payfrontend.http.settings import AppSettings
    from payfrontend.services.clients.adminusers_client import AdminUsersClient
    from payfrontend.utils.base_client import BaseClient

logger = logging.getLogger(__name__)


def _gateway_account(charge_data: object) -> dict[str, Any]:
    if not isinstance(charge_data, dict):
        return {}
    account = charge_data.get("gateway_account")
    return account if isinstance(account, dict) else {}


async def resolve_service_for_request(  # noqa: PLR0913
    request: Request,
    *,
    cache: ExpiringCache,
    base_client: BaseClient,
    settings: AppSettings,
    client_factory: Callable[..., AdminUsersClient] = get_admin_users_client,
) -> None:
    state = request.state
    charge_id = getattr(state, "charge_id", None)
    charge_data = getattr(state, "charge_data", None)
    if not charge_id and not charge_data:
        raise RouteOutcome("UNAUTHORISED", with_analytics_error())

    account = _gateway_account(charge_data)
    gateway_account_id = account.get("gateway_account_id")
    if gateway_account_id is None:
        logger.warning(
            "No gateway account on charge %s, continuing without service",
            charge_id,
        )
        return

    cached_service = cache.get(gateway_account_id)
    if cached_service is not None:
        state.service = cached_service
        return

    client = client_factory(
        base_client,
        settings.adminusers_url,
        correlation_id=get_correlation_id(request),
        trace_context=trace_context_from_request(request),
    )
    try:
        service = await run_in_threadpool(
            client.find_service_by,
            gateway_account_id=gateway_account_id,
        )
    except Exception:
        logger.exception(
            "Failed to retrieve service information for service: %s "
            "(gateway account %s, charge %s)",
            account.get("service_name"),
            gateway_account_id,
            charge_id,
        )
        return

    cache.put(gateway_account_id, service, settings.service_cache_max_age)
    state.service = service


async def resolve_service(request: Request) -> None:
    """FastAPI dependency wiring the step to the app's shared components."""
    await resolve_service_for_request(
        request,
        cache=get_service_cache(request),
        base_client=get_base_client(request),
        settings=get_settings(request),
    )
