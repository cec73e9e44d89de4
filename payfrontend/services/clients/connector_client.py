"""Client for the connector service (charges and one-time tokens)."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from payfrontend.schemas import charge_schema, token_schema
from payfrontend.services.clients.base import ServiceClientError, json_or_raise
from payfrontend.utils.base_client import RequestArgs

if TYPE_CHECKING:
    from payfrontend.utils.base_client import BaseClient
    from payfrontend.utils.tracing import TraceContext

CHARGE_PATH = "/v1/frontend/charges/{charge_id}"
TOKEN_PATH = "/v1/frontend/tokens/{token_id}"


class ConnectorClientError(ServiceClientError):
    service = "connector"


class ConnectorClient:
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

    def _url(self, template: str, **params: str) -> str:
        quoted = {key: quote(str(value), safe="") for key, value in params.items()}
        return self.base_url + template.format(**quoted)

    def _args(self) -> RequestArgs:
        return RequestArgs(
            correlation_id=self.correlation_id,
            trace_context=self.trace_context,
        )

    def find_charge(self, charge_id: str) -> dict:
        """Return the frontend view of a charge."""
        url = self._url(CHARGE_PATH, charge_id=charge_id)
        response = self.base_client.get(url, self._args())
        return json_or_raise(
            response,
            url=url,
            schema=charge_schema,
            name="charge",
            error_class=ConnectorClientError,
        )

    def find_charge_by_token(self, token_id: str) -> dict:
        """Return `{"charge": ..., "used": ...}` for a one-time payment token."""
        url = self._url(TOKEN_PATH, token_id=token_id)
        response = self.base_client.get(url, self._args())
        return json_or_raise(
            response,
            url=url,
            schema=token_schema,
            name="token",
            error_class=ConnectorClientError,
        )

    def delete_token(self, token_id: str) -> None:
        """Mark a one-time token as spent."""
        url = self._url(TOKEN_PATH, token_id=token_id)
        response = self.base_client.delete(url, self._args())
        if response.status_code not in (200, 204):
            raise ConnectorClientError(url, response.status_code, response.reason)
