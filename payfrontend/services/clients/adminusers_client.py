"""Client for the adminusers service."""

from __future__ import annotations

from typing import TYPE_CHECKING

from payfrontend.schemas import service_schema
from payfrontend.services.clients.base import ServiceClientError, json_or_raise
from payfrontend.services.models import Service
from payfrontend.utils.base_client import RequestArgs

if TYPE_CHECKING:
    from payfrontend.utils.base_client import BaseClient
    from payfrontend.utils.tracing import TraceContext

SERVICES_PATH = "/v1/api/services"


class AdminUsersClientError(ServiceClientError):
    service = "adminusers"


class AdminUsersClient:
    def __init__(
        self,
        base_client: BaseClient,
        base_url: str,
        *,
        correlation_id: str | None = None,
        trace_context: TraceContext | None = None,
    ) -> None:
        self.base_client = base_client
        self.base_url = base_url.rstrip("/")
        self.correlation_id = correlation_id
        self.trace_context = trace_context

    def find_service_by(self, *, gateway_account_id: str | int) -> Service:
        """Return the service that owns the gateway account."""
        url = f"{self.base_url}{SERVICES_PATH}"
        response = self.base_client.get(
            url,
            RequestArgs(
                qs={"gatewayAccountId": gateway_account_id},
                correlation_id=self.correlation_id,
                trace_context=self.trace_context,
            ),
        )
        body = json_or_raise(
            response,
            url=url,
            schema=service_schema,
            name="service",
            error_class=AdminUsersClientError,
        )
        return Service.from_json(body)


def get_admin_users_client(
    base_client: BaseClient,
    base_url: str,
    *,
    correlation_id: str | None = None,
    trace_context: TraceContext | None = None,
) -> AdminUsersClient:
    return AdminUsersClient(
        base_client,
        base_url,
        correlation_id=correlation_id,
        trace_context=trace_context,
    )
