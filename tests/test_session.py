# ruff: noqa: ANN201, ANN206, D100, D101, D102, INP001, PT009

import json
import os
import unittest
from base64 import b64decode
from unittest import mock

import itsdangerous
import test_support

from payfrontend.http.cookie_session import (
    INSECURE_DEV_ENV,
    MAX_COOKIE_BYTES,
    SECRET_ENV,
    SESSION_COOKIE_NAME,
    CookieSession,
    MissingSessionSecretError,
    load_session,
    session_secret_key,
)
from payfrontend.http.session_middleware import (
    FrontendSessionMiddleware,
    _encode_within_limit,
)


def decode(value, signer):
    return json.loads(b64decode(signer.unsign(value.encode("utf-8"))))


class TestCookieSession(unittest.TestCase):
    def test_csrf_token_is_stable(self):
        session = CookieSession(data={})
        token = session.get_csrf_token()
        self.assertEqual(len(token), 64)
        self.assertEqual(session.get_csrf_token(), token)

    def test_charge_tokens(self):
        session = CookieSession(data={})
        self.assertIsNone(session.charge_token("charge123"))
        session.set_charge_token("charge123", {"created_at": "now"})
        self.assertEqual(session.charge_token("charge123"), {"created_at": "now"})
        self.assertIn("ch_charge123", session.data)

    def test_secret_key(self):
        with mock.patch.dict(os.environ, {SECRET_ENV: " s3cret "}, clear=True):
            self.assertEqual(session_secret_key(), "s3cret")
        with mock.patch.dict(os.environ, {INSECURE_DEV_ENV: "1"}, clear=True):
            self.assertEqual(session_secret_key(), "insecure-dev-secret")
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(MissingSessionSecretError):
                session_secret_key()


class TestCookieSize(unittest.TestCase):
    def setUp(self):
        self.signer = itsdangerous.TimestampSigner("test-secret")

    def test_small_session_is_kept(self):
        payload = {"csrf_token": "x", "ch_a": {"created_at": "t"}}
        self.assertEqual(decode(_encode_within_limit(payload, self.signer), self.signer), payload)

    def test_oldest_charge_tokens_are_dropped(self):
        payload = {"csrf_token": "x"}
        for i in range(100):
            payload[f"ch_charge{i:03d}"] = {"created_at": "2026-01-01T00:00:00+00:00"}

        value = _encode_within_limit(payload, self.signer)

        self.assertLessEqual(len(value.encode("utf-8")), MAX_COOKIE_BYTES)
        kept = decode(value, self.signer)
        self.assertEqual(kept["csrf_token"], "x")
        self.assertIn("ch_charge099", kept)
        self.assertNotIn("ch_charge000", kept)

    def test_oversized_fields_fall_back_to_minimal_session(self):
        payload = {"csrf_token": "x", "created_at": "t", "blob": "y" * 5000}
        kept = decode(_encode_within_limit(payload, self.signer), self.signer)
        self.assertEqual(kept, {"csrf_token": "x", "created_at": "t"})


class TestSessionCookie(unittest.TestCase):
    def test_tampered_cookie_is_ignored_and_cleared(self):
        downstream = test_support.FakeDownstream()
        client = test_support.make_test_client(downstream=downstream)
        client.cookies.set(SESSION_COOKIE_NAME, "not-a-signed-value")

        response = client.get("/healthcheck")

        self.assertEqual(response.status_code, 200)
        set_cookie = response.headers["set-cookie"]
        self.assertTrue(set_cookie.startswith(f"{SESSION_COOKIE_NAME}=null"))
        self.assertIn("Max-Age=0", set_cookie)

    def test_forged_charge_token_is_unauthorised(self):
        downstream = test_support.FakeDownstream()
        client = test_support.make_test_client(downstream=downstream)
        forged = itsdangerous.TimestampSigner("wrong-secret").sign(b"e30=").decode()
        client.cookies.set(SESSION_COOKIE_NAME, forged)

        response = client.get("/card_details/charge123")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(downstream.calls, [])


class TestSessionMiddleware(unittest.TestCase):
    def make_client(self):
        _FastAPI, TestClient = test_support.require_fastapi()
        from starlette.applications import Starlette
        from starlette.responses import PlainTextResponse
        from starlette.routing import Route

        def touch(request):
            load_session(request).get_csrf_token()
            return PlainTextResponse("ok")

        app = Starlette(routes=[Route("/touch", touch)])
        app = FrontendSessionMiddleware(app, secret_key="test-secret", max_age=5400)
        return TestClient(app)

    def test_cookie_carries_configured_max_age(self):
        client = self.make_client()
        set_cookie = client.get("/touch").headers["set-cookie"]
        self.assertIn("Max-Age=5400", set_cookie.split("; "))

    def test_secure_follows_forwarded_proto(self):
        client = self.make_client()
        plain = client.get("/touch").headers["set-cookie"]
        forwarded = client.get(
            "/touch", headers={"x-forwarded-proto": "https"}
        ).headers["set-cookie"]
        self.assertNotIn("secure", plain.split("; "))
        self.assertIn("secure", forwarded.split("; "))
        self.assertIn("httponly", forwarded.split("; "))
        self.assertIn("samesite=lax", forwarded.split("; "))


if __name__ == "__main__":
    unittest.main()
