"""Load the charge named in the URL into request state.

A charge is only loaded when the session holds a token for it, i.e. the
browser arrived through `/secure/{token_id}`. Otherwise `charge_id` and
`charge_data` stay unset and the service step answers `UNAUTHORISED`.
"""

from __future__ import annotations

import logging

import requests
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from payfrontend.http.cookie_session import load_session
from payfrontend.http.dependencies import (
    get_base_client,
    get_correlation_id,
    get_settings,
)
from payfrontend.response_router import RouteOutcome, with_analytics_error
from payfrontend.services.clients.connector_client import (
    ConnectorClient,
    ConnectorClientError,
)
from payfrontend.utils.tracing import trace_context_from_request

logger = logging.getLogger(__name__)


def connector_client(request: Request) -> ConnectorClient:
    return ConnectorClient(
        get_base_client(request),
        get_settings(request).connector_url,
        correlation_id=get_correlation_id(request),
        trace_context=trace_context_from_request(request),
    )


async def retrieve_charge(request: Request, charge_id: str) -> None:
    """FastAPI dependency populating `charge_id` and `charge_data`."""
    session = load_session(request)
    if session.charge_token(charge_id) is None:
        logger.info("No session token for charge %s", charge_id)
        return

    request.state.charge_id = charge_id
    client = connector_client(request)
    try:
        charge = await run_in_threadpool(client.find_charge, charge_id)
    except ConnectorClientError as e:
        logger.error("Failed to retrieve charge %s: %s", charge_id, e)
        if e.status_code == 404:
            raise RouteOutcome("NOT_FOUND", with_analytics_error()) from e
        raise RouteOutcome("SYSTEM_ERROR", with_analytics_error()) from e
    except requests.RequestException as e:
        logger.error("Connector unreachable for charge %s: %s", charge_id, e)
        raise RouteOutcome("SYSTEM_ERROR", with_analytics_error()) from e

    request.state.charge_data = charge
