# ruff: noqa: ANN201, ANN206, D100, D101, D102, INP001, PT009

import unittest

import test_support

from payfrontend.services.clients.adminusers_client import (
    AdminUsersClientError,
    get_admin_users_client,
)
from payfrontend.services.clients.connector_client import (
    ConnectorClient,
    ConnectorClientError,
)
from payfrontend.utils.correlation_header import CORRELATION_HEADER
from payfrontend.utils.tracing import TraceContext


class TestAdminUsersClient(unittest.TestCase):
    def make_client(self, response, **kwargs):
        self.session = test_support.make_session(return_value=response)
        base_client = test_support.make_base_client(self.session)
        return get_admin_users_client(
            base_client,
            test_support.ADMINUSERS_URL + "/",
            **kwargs,
        )

    def test_find_service_by(self):
        client = self.make_client(
            test_support.make_response(200, test_support.service_json()),
            correlation_id="corr-9",
            trace_context=TraceContext(trace_id="1-abc-def"),
        )

        service = client.find_service_by(gateway_account_id=42)

        method, url = self.session.request.call_args.args
        kwargs = self.session.request.call_args.kwargs
        self.assertEqual(method, "GET")
        self.assertEqual(url, "http://adminusers.test/v1/api/services")
        self.assertEqual(kwargs["params"], {"gatewayAccountId": 42})
        self.assertEqual(kwargs["headers"][CORRELATION_HEADER], "corr-9")
        self.assertTrue(kwargs["headers"]["X-Amzn-Trace-Id"].startswith("Root=1-abc-def;"))
        self.assertEqual(service.name, "Renew a licence")
        self.assertEqual(service.external_id, "a1b2c3d4e5")
        self.assertEqual(service.gateway_account_ids, ("42",))
        self.assertEqual(service.merchant_details.address_city, "London")
        self.assertFalse(service.has_custom_branding)

    def test_custom_branding(self):
        body = test_support.service_json(
            custom_branding={"css_url": "https://cdn.test/a.css", "image_url": None}
        )
        client = self.make_client(test_support.make_response(200, body))
        service = client.find_service_by(gateway_account_id="42")
        self.assertTrue(service.has_custom_branding)
        self.assertEqual(service.custom_branding.css_url, "https://cdn.test/a.css")

    def test_not_found_raises(self):
        client = self.make_client(
            test_support.make_response(404, {"message": "Service not found"})
        )
        with self.assertRaises(AdminUsersClientError) as ctx:
            client.find_service_by(gateway_account_id=42)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertIn("Service not found", str(ctx.exception))

    def test_invalid_body_raises(self):
        client = self.make_client(test_support.make_response(200, {"name": ""}))
        with self.assertRaises(AdminUsersClientError) as ctx:
            client.find_service_by(gateway_account_id=42)
        self.assertEqual(ctx.exception.status_code, 200)


class TestConnectorClient(unittest.TestCase):
    def setUp(self):
        self.downstream = test_support.FakeDownstream()
        session = test_support.make_session(side_effect=self.downstream)
        self.client = ConnectorClient(
            test_support.make_base_client(session),
            test_support.CONNECTOR_URL,
            correlation_id="corr-1",
        )

    def test_find_charge(self):
        self.downstream.routes[("GET", "/v1/frontend/charges/charge123")] = (
            test_support.make_response(200, test_support.charge_json())
        )
        charge = self.client.find_charge("charge123")
        self.assertEqual(charge["amount"], 1050)
        self.assertEqual(charge["gateway_account"]["gateway_account_id"], 42)

    def test_find_charge_quotes_id(self):
        with self.assertRaises(ConnectorClientError) as ctx:
            self.client.find_charge("../admin")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertTrue(
            self.downstream.calls[0]["url"].endswith("/v1/frontend/charges/..%2Fadmin")
        )

    def test_token_round_trip(self):
        self.downstream.routes[("GET", "/v1/frontend/tokens/tok1")] = (
            test_support.make_response(
                200, {"charge": test_support.charge_json(), "used": False}
            )
        )
        self.downstream.routes[("DELETE", "/v1/frontend/tokens/tok1")] = (
            test_support.make_response(204)
        )
        token = self.client.find_charge_by_token("tok1")
        self.assertFalse(token["used"])
        self.client.delete_token("tok1")
        self.assertEqual(
            [call["method"] for call in self.downstream.calls],
            ["GET", "DELETE"],
        )

    def test_delete_token_failure(self):
        with self.assertRaises(ConnectorClientError):
            self.client.delete_token("missing")


if __name__ == "__main__":
    unittest.main()
