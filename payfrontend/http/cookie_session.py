"""Frontend session cookie helpers.

The session is a small JSON dict signed into the `frontend_state` cookie by
`FrontendSessionMiddleware`. Handlers access it through `load_session()`.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, Literal

if TYPE_CHECKING:
    from starlette.requests import Request

SESSION_COOKIE_NAME: Final[str] = "frontend_state"
DEFAULT_SAMESITE: Final[Literal["lax", "strict", "none"]] = "lax"
SESSION_MAX_AGE_SECONDS: Final[int] = 90 * 60
MAX_COOKIE_BYTES: Final[int] = 3800
SECRET_ENV: Final[str] = "SESSION_ENCRYPTION_KEY"
INSECURE_DEV_ENV: Final[str] = "PAYFRONTEND_INSECURE_DEV"
CHARGE_TOKEN_PREFIX: Final[str] = "ch_"


class MissingSessionSecretError(RuntimeError):
    """Raised when the session secret is missing and insecure mode is off."""

    def __init__(self, env_name: str) -> None:
        """Create a MissingSessionSecretError for the given env var name."""
        message = (
            f"Missing {SECRET_ENV} (set {env_name}=1 to allow insecure dev fallback)."
        )
        super().__init__(message)


def session_secret_key() -> str:
    """Return the key used to sign the session cookie."""
    value = os.environ.get(SECRET_ENV, "").strip()
    if value:
        return value
    insecure = os.environ.get(INSECURE_DEV_ENV, "").strip().lower()
    if insecure in {"1", "true", "yes", "on"}:
        return "insecure-dev-secret"
    raise MissingSessionSecretError(INSECURE_DEV_ENV)


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class CookieSession:
    """Dict-backed session with CSRF and charge token helpers."""

    data: dict[str, Any]

    def get_csrf_token(self) -> str:
        """Return the CSRF token, generating one if needed."""
        token = self.data.get("csrf_token")
        if isinstance(token, str) and token:
            return token
        token = secrets.token_hex(32)
        self.data["csrf_token"] = token
        return token

    def charge_token(self, charge_id: str) -> dict[str, Any] | None:
        value = self.data.get(CHARGE_TOKEN_PREFIX + charge_id)
        return value if isinstance(value, dict) else None

    def set_charge_token(self, charge_id: str, value: dict[str, Any]) -> None:
        self.data[CHARGE_TOKEN_PREFIX + charge_id] = value


def load_session(request: Request) -> CookieSession:
    """Return a `CookieSession` backed by `request.scope["session"]`."""
    scope = request.scope
    session = scope.get("session")
    if not isinstance(session, dict):
        session = {}
        scope["session"] = session
    session.setdefault("created_at", _utc_now_iso())
    return CookieSession(data=session)


__all__ = [
    "DEFAULT_SAMESITE",
    "INSECURE_DEV_ENV",
    "MAX_COOKIE_BYTES",
    "SESSION_COOKIE_NAME",
    "SESSION_MAX_AGE_SECONDS",
    "CookieSession",
    "MissingSessionSecretError",
    "load_session",
    "session_secret_key",
]
