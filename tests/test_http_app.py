# ruff: noqa: ANN201, ANN206, D100, D101, D102, INP001, PT009

import unittest

import requests
import test_support

from payfrontend.http.cookie_session import SESSION_COOKIE_NAME
from payfrontend.utils.correlation_header import CORRELATION_HEADER

SERVICES_PATH = "/v1/api/services"
TOKEN_PATH = "/v1/frontend/tokens/tok1"
CHARGE_PATH = "/v1/frontend/charges/charge123"


def happy_routes(overrides=None):
    routes = {
        ("GET", TOKEN_PATH): test_support.make_response(
            200, {"charge": test_support.charge_json(), "used": False}
        ),
        ("DELETE", TOKEN_PATH): test_support.make_response(204),
        ("GET", CHARGE_PATH): test_support.make_response(
            200, test_support.charge_json()
        ),
        ("GET", SERVICES_PATH): test_support.make_response(
            200, test_support.service_json()
        ),
    }
    routes.update(overrides or {})
    return routes


class TestPlumbing(unittest.TestCase):
    def setUp(self):
        self.downstream = test_support.FakeDownstream()
        self.client = test_support.make_test_client(downstream=self.downstream)

    def test_healthcheck(self):
        response = self.client.get("/healthcheck")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ping": {"healthy": True}})

    def test_unknown_page_renders_not_found(self):
        response = self.client.get("/no/such/page")
        self.assertEqual(response.status_code, 404)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertIn("Page not found", response.text)

    def test_correlation_id_is_generated(self):
        response = self.client.get("/healthcheck")
        self.assertRegex(response.headers[CORRELATION_HEADER], r"^[0-9a-f]{32}$")

    def test_correlation_id_is_echoed(self):
        response = self.client.get("/healthcheck", headers={CORRELATION_HEADER: "abc"})
        self.assertEqual(response.headers[CORRELATION_HEADER], "abc")

    def test_static_assets(self):
        response = self.client.get("/public/stylesheets/application.css")
        self.assertEqual(response.status_code, 200)

        response = self.client.get("/favicon.ico", follow_redirects=False)
        self.assertEqual(response.status_code, 301)
        self.assertEqual(response.headers["location"], "/public/images/favicon.svg")


class TestCardDetails(unittest.TestCase):
    def make_client(self, routes=None, **kwargs):
        if routes is None:
            routes = happy_routes()
        self.downstream = test_support.FakeDownstream(routes)
        return test_support.make_test_client(downstream=self.downstream, **kwargs)

    def start_payment(self, client, headers=None):
        response = client.get("/secure/tok1", headers=headers, follow_redirects=False)
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/card_details/charge123")
        return response

    def test_without_session_is_unauthorised(self):
        client = self.make_client()
        response = client.get("/card_details/charge123")
        self.assertEqual(response.status_code, 403)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertIn("You cannot access this page", response.text)
        self.assertEqual(self.downstream.calls, [])

    def test_full_flow_renders_service(self):
        client = self.make_client()
        first = self.start_payment(client)
        self.assertIn(SESSION_COOKIE_NAME, first.cookies)
        self.assertEqual(len(self.downstream.calls_to(TOKEN_PATH)), 2)

        response = client.get("/card_details/charge123")

        self.assertEqual(response.status_code, 200)
        self.assertIn("Enter card details", response.text)
        self.assertIn("10.50", response.text)
        self.assertIn("Renew a licence", response.text)
        self.assertIn("Licensing Office", response.text)
        services = self.downstream.calls_to(SERVICES_PATH)
        self.assertEqual(len(services), 1)
        self.assertEqual(services[0]["params"], {"gatewayAccountId": 42})

    def test_page_and_analytics_share_amount_format(self):
        charge = test_support.charge_json(amount=123456)
        client = self.make_client(
            happy_routes(
                {
                    ("GET", TOKEN_PATH): test_support.make_response(
                        200, {"charge": charge, "used": False}
                    ),
                    ("GET", CHARGE_PATH): test_support.make_response(200, charge),
                }
            )
        )
        self.start_payment(client)
        response = client.get("/card_details/charge123")
        self.assertEqual(response.status_code, 200)
        self.assertIn("&pound;1234.56", response.text)
        self.assertIn('data-analytics-amount="1234.56"', response.text)

    def test_service_is_cached_between_requests(self):
        client = self.make_client()
        self.start_payment(client)
        client.get("/card_details/charge123")
        client.get("/card_details/charge123")
        self.assertEqual(len(self.downstream.calls_to(CHARGE_PATH)), 2)
        self.assertEqual(len(self.downstream.calls_to(SERVICES_PATH)), 1)

    def test_adminusers_failure_still_renders_page(self):
        client = self.make_client(
            happy_routes({("GET", SERVICES_PATH): requests.ConnectionError("refused")})
        )
        self.start_payment(client)
        with self.assertLogs("payfrontend.middleware.resolve_service", level="ERROR"):
            response = client.get("/card_details/charge123")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Enter card details", response.text)
        self.assertNotIn("Licensing Office", response.text)

    def test_ids_are_forwarded_downstream(self):
        client = self.make_client()
        self.start_payment(client)
        client.get(
            "/card_details/charge123",
            headers={
                CORRELATION_HEADER: "corr-42",
                "X-Amzn-Trace-Id": "Root=1-abc-def;Parent=0000000000000001;Sampled=1",
            },
        )
        headers = self.downstream.calls_to(SERVICES_PATH)[0]["headers"]
        self.assertEqual(headers[CORRELATION_HEADER], "corr-42")
        self.assertTrue(headers["X-Amzn-Trace-Id"].startswith("Root=1-abc-def;Parent="))
        self.assertEqual(headers["host"], "adminusers.test")

    def test_used_token_is_unauthorised(self):
        client = self.make_client(
            happy_routes(
                {
                    ("GET", TOKEN_PATH): test_support.make_response(
                        200, {"charge": test_support.charge_json(), "used": True}
                    )
                }
            )
        )
        response = client.get("/secure/tok1")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.downstream.calls_to(TOKEN_PATH)[-1]["method"], "GET")

    def test_unknown_token_is_unauthorised(self):
        client = self.make_client({})
        response = client.get("/secure/nope")
        self.assertEqual(response.status_code, 403)

    def test_connector_failure_renders_system_error(self):
        client = self.make_client(
            happy_routes(
                {
                    ("GET", CHARGE_PATH): test_support.make_response(
                        500, {"message": "boom"}
                    )
                }
            )
        )
        self.start_payment(client)
        response = client.get("/card_details/charge123")
        self.assertEqual(response.status_code, 500)
        self.assertIn("Sorry, there is a problem with the service", response.text)
        self.assertEqual(self.downstream.calls_to(SERVICES_PATH), [])

    def test_missing_charge_renders_not_found(self):
        client = self.make_client(
            happy_routes({("GET", CHARGE_PATH): test_support.make_response(404)})
        )
        self.start_payment(client)
        response = client.get("/card_details/charge123")
        self.assertEqual(response.status_code, 404)
        self.assertIn("Page not found", response.text)


if __name__ == "__main__":
    unittest.main()
