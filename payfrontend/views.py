"""Page routes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import requests
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from payfrontend import response_router
from payfrontend.http.cookie_session import load_session
from payfrontend.http.jinja import format_amount
from payfrontend.middleware.resolve_service import resolve_service
from payfrontend.middleware.retrieve_charge import connector_client, retrieve_charge
from payfrontend.response_router import RouteOutcome, with_analytics_error
from payfrontend.services.clients.connector_client import ConnectorClientError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/healthcheck")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"ping": {"healthy": True}})


@router.get("/secure/{token_id}")
async def secure(request: Request, token_id: str) -> Response:
    """Exchange a one-time token for a charge entry in the session."""
    client = connector_client(request)
    try:
        token = await run_in_threadpool(client.find_charge_by_token, token_id)
    except ConnectorClientError as e:
        logger.warning("Rejected payment token: %s", e)
        action = "UNAUTHORISED" if e.status_code == 404 else "SYSTEM_ERROR"
        raise RouteOutcome(action, with_analytics_error()) from e
    except requests.RequestException as e:
        logger.error("Connector unreachable while validating token: %s", e)
        raise RouteOutcome("SYSTEM_ERROR", with_analytics_error()) from e

    if token.get("used"):
        raise RouteOutcome("UNAUTHORISED", with_analytics_error())

    charge = token["charge"]
    charge_id = charge.get("externalId") or charge.get("charge_id")
    if not charge_id:
        raise RouteOutcome("SYSTEM_ERROR", with_analytics_error())

    try:
        await run_in_threadpool(client.delete_token, token_id)
    except (ConnectorClientError, requests.RequestException) as e:
        logger.warning("Unable to delete payment token: %s", e)

    session = load_session(request)
    session.set_charge_token(
        charge_id,
        {"created_at": datetime.now(UTC).isoformat()},
    )
    return RedirectResponse(url=f"/card_details/{charge_id}", status_code=303)


@router.get(
    "/card_details/{charge_id}",
    dependencies=[Depends(retrieve_charge), Depends(resolve_service)],
)
def card_details(request: Request, charge_id: str) -> Response:
    charge = request.state.charge_data
    account = charge.get("gateway_account", {})
    return response_router.response(
        request,
        "CHARGE",
        {
            "charge_id": charge_id,
            "charge": charge,
            "analytics": {
                "path": f"/card_details/{charge_id}",
                "analytics_id": account.get("analytics_id") or "Service unknown",
                "type": account.get("type") or "Service unknown",
                "payment_provider": account.get("payment_provider")
                or "Service unknown",
                "amount": format_amount(charge.get("amount", 0)),
            },
        },
    )
