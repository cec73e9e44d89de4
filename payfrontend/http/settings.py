"""Runtime settings for the payment front end.

This module centralizes environment parsing. Settings are read once at
process start and handed to the components that need them; nothing else in
the package reads the environment at request time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PORT: int = 3000

DEFAULT_MAX_SOCKETS: int = 100
"""Keep-alive pool cap, applied to each scheme's pool separately."""

DEFAULT_SERVICE_CACHE_MAX_AGE_MS: int = 15 * 60 * 1000

DEFAULT_ADMINUSERS_URL: str = "http://localhost:9700"
DEFAULT_CONNECTOR_URL: str = "http://localhost:9300"


def env_int(name: str, *, default: int) -> int:
    """Parse an environment variable as an integer, with a fallback default."""
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_str(name: str) -> str | None:
    """Return a stripped environment value, or None when unset or blank."""
    value = os.environ.get(name, "").strip()
    return value or None


def default_static_dir() -> Path:
    """Return the directory served under `/public`."""
    env_value = env_str("PAYFRONTEND_STATIC_DIR")
    if env_value:
        return Path(env_value).expanduser()

    # Package-relative resolution works for both source checkouts and wheels.
    return Path(__file__).resolve().parents[1] / "public"


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Process-wide settings, built once at startup."""

    port: int = DEFAULT_PORT
    max_sockets: int = DEFAULT_MAX_SOCKETS
    disable_internal_https: bool = False
    certs_path: str | None = None
    forward_proxy_url: str | None = None
    service_cache_max_age: int = DEFAULT_SERVICE_CACHE_MAX_AGE_MS
    adminusers_url: str = DEFAULT_ADMINUSERS_URL
    connector_url: str = DEFAULT_CONNECTOR_URL
    analytics_tracking_id: str | None = None
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> AppSettings:
        """Build settings from environment variables."""
        max_sockets = env_int("MAX_SOCKETS", default=DEFAULT_MAX_SOCKETS)
        if max_sockets <= 0:
            max_sockets = DEFAULT_MAX_SOCKETS

        service_cache_max_age = env_int(
            "SERVICE_CACHE_MAX_AGE",
            default=DEFAULT_SERVICE_CACHE_MAX_AGE_MS,
        )
        if service_cache_max_age < 0:
            service_cache_max_age = DEFAULT_SERVICE_CACHE_MAX_AGE_MS

        # Only the exact string "true" turns internal HTTPS off.
        disable_internal_https = os.environ.get("DISABLE_INTERNAL_HTTPS") == "true"

        return cls(
            port=env_int("PORT", default=DEFAULT_PORT),
            max_sockets=max_sockets,
            disable_internal_https=disable_internal_https,
            certs_path=env_str("CERTS_PATH"),
            forward_proxy_url=env_str("FORWARD_PROXY_URL"),
            service_cache_max_age=service_cache_max_age,
            adminusers_url=(env_str("ADMINUSERS_URL") or DEFAULT_ADMINUSERS_URL).rstrip(
                "/"
            ),
            connector_url=(env_str("CONNECTOR_URL") or DEFAULT_CONNECTOR_URL).rstrip(
                "/"
            ),
            analytics_tracking_id=env_str("ANALYTICS_TRACKING_ID"),
            environment=env_str("NODE_ENV") or "development",
        )
