"""Signed cookie session middleware.

- Signs a base64 JSON dict with `itsdangerous.TimestampSigner`.
- Keeps the cookie under `MAX_COOKIE_BYTES` by dropping charge tokens,
  oldest first.
"""

from __future__ import annotations

import json
from base64 import b64decode, b64encode
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from typing import TYPE_CHECKING, Literal

import itsdangerous
from itsdangerous.exc import BadSignature
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection

from payfrontend.http.cookie_session import (
    CHARGE_TOKEN_PREFIX,
    DEFAULT_SAMESITE,
    MAX_COOKIE_BYTES,
    SESSION_COOKIE_NAME,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.types import ASGIApp, Message, Receive, Scope, Send


class FrontendSessionMiddleware:
    """Load the session from the cookie and write it back on response start."""

    def __init__(  # noqa: PLR0913
        self,
        app: ASGIApp,
        *,
        secret_key: str | Callable[[], str],
        session_cookie: str = SESSION_COOKIE_NAME,
        max_age: int | None = None,
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = DEFAULT_SAMESITE,
        https_only: bool = False,
    ) -> None:
        """Initialize the session middleware."""
        self.app = app
        self._secret_key = secret_key
        self._signer: itsdangerous.TimestampSigner | None = None
        self.session_cookie = session_cookie
        self.max_age = max_age
        self.path = path
        self.same_site = same_site
        self.https_only = https_only

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Load and persist session data for HTTP scopes."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        signer = self._get_signer()
        session, had_cookie = self._load(connection, signer)
        scope["session"] = session

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                session_data = scope.get("session") or {}
                secure = _secure_from_scope(scope, https_only=self.https_only)
                if session_data:
                    value = _encode_within_limit(session_data, signer)
                    headers.append(
                        "Set-Cookie",
                        _cookie_header(
                            self.session_cookie,
                            value,
                            max_age=self.max_age,
                            path=self.path,
                            secure=secure,
                            same_site=self.same_site,
                        ),
                    )
                elif had_cookie:
                    headers.append(
                        "Set-Cookie",
                        _cookie_header(
                            self.session_cookie,
                            "null",
                            max_age=0,
                            path=self.path,
                            secure=secure,
                            same_site=self.same_site,
                        ),
                    )
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _load(
        self,
        connection: HTTPConnection,
        signer: itsdangerous.TimestampSigner,
    ) -> tuple[dict[str, object], bool]:
        raw = connection.cookies.get(self.session_cookie)
        if not raw:
            return {}, False
        try:
            unsigned = signer.unsign(raw.encode("utf-8"), max_age=self.max_age)
            session = json.loads(b64decode(unsigned))
        except (BadSignature, ValueError, TypeError):
            return {}, True
        return (session if isinstance(session, dict) else {}), True

    def _get_signer(self) -> itsdangerous.TimestampSigner:
        if self._signer is None:
            key = self._secret_key() if callable(self._secret_key) else self._secret_key
            self._signer = itsdangerous.TimestampSigner(str(key))
        return self._signer


def _secure_from_scope(scope: Scope, *, https_only: bool) -> bool:
    if https_only:
        return True
    headers = dict(scope.get("headers") or [])
    forwarded = headers.get(b"x-forwarded-proto", b"").split(b",", 1)[0].strip()
    if forwarded:
        return forwarded == b"https"
    return scope.get("scheme") == "https"


def _cookie_header(  # noqa: PLR0913
    name: str,
    value: str,
    *,
    max_age: int | None,
    path: str,
    secure: bool,
    same_site: str,
) -> str:
    attrs = [f"{name}={value}", f"path={path}"]
    if max_age == 0:
        attrs += ["Max-Age=0", "Expires=Thu, 01 Jan 1970 00:00:00 GMT"]
    elif max_age is not None:
        expires_at = datetime.now(UTC) + timedelta(seconds=max_age)
        attrs += [
            f"Max-Age={max_age}",
            f"Expires={format_datetime(expires_at, usegmt=True)}",
        ]
    attrs += ["httponly", f"samesite={same_site}"]
    if secure:
        attrs.append("secure")
    return "; ".join(attrs)


def _encode(payload: dict[str, object], signer: itsdangerous.TimestampSigner) -> str:
    data = b64encode(json.dumps(payload).encode("utf-8"))
    return signer.sign(data).decode("utf-8")


def _encode_within_limit(
    payload: dict[str, object],
    signer: itsdangerous.TimestampSigner,
) -> str:
    candidate = dict(payload)
    value = _encode(candidate, signer)
    # Dict order is insertion order, so the first charge tokens are the oldest.
    charge_keys = [key for key in candidate if key.startswith(CHARGE_TOKEN_PREFIX)]
    while len(value.encode("utf-8")) > MAX_COOKIE_BYTES and charge_keys:
        candidate.pop(charge_keys.pop(0))
        value = _encode(candidate, signer)
    if len(value.encode("utf-8")) > MAX_COOKIE_BYTES:
        minimal = {
            key: candidate[key] for key in ("csrf_token", "created_at") if key in candidate
        }
        value = _encode(minimal, signer)
    return value
