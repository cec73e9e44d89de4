"""Outbound HTTP client for internal services.

One `BaseClient` is built at startup and shared by every downstream client.
It owns two keep-alive pools (plain and TLS), computes the standard header
set for each call, optionally routes the transport through a forward proxy,
and retries a narrow set of transient network errors.

HTTP status codes are never interpreted here: any response, 2xx or not, is
handed back unchanged and the caller decides what it means.
"""

from __future__ import annotations

import errno
import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.adapters import HTTPAdapter

from payfrontend.utils.correlation_header import CORRELATION_HEADER
from payfrontend.utils.custom_certificate import (
    get_cert_options,
    ssl_context_with_certs,
)
from payfrontend.utils.tracing import TRACE_HEADER, trace_header_value

if TYPE_CHECKING:
    import ssl
    from collections.abc import Callable, Iterator, Mapping

    from payfrontend.http.settings import AppSettings
    from payfrontend.utils.tracing import Segment, TraceContext

logger = logging.getLogger(__name__)

METHODS: Final[tuple[str, ...]] = ("GET", "POST", "PUT", "PATCH", "DELETE")
RETRIABLE_ERRORS: Final[frozenset[str]] = frozenset({"ECONNRESET"})
MAX_ATTEMPTS: Final[int] = 3
RETRY_DELAY: Final[float] = 5.0
TIMEOUT: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class RequestArgs:
    """Per-call request description."""

    payload: Any = None
    qs: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    correlation_id: str | None = None
    trace_context: TraceContext | None = None


def _iter_error_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    stack: list[object] = [exc]
    while stack:
        current = stack.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        # urllib3 nests the socket error in args (ProtocolError) or in
        # `reason` (MaxRetryError); Python chains it in __cause__/__context__.
        stack.extend(current.args)
        stack.append(getattr(current, "reason", None))
        stack.append(current.__cause__)
        stack.append(current.__context__)


def error_codes(exc: BaseException) -> set[str]:
    """Return the symbolic errno names carried anywhere in an error chain."""
    codes: set[str] = set()
    for error in _iter_error_chain(exc):
        if isinstance(error, ConnectionResetError):
            codes.add("ECONNRESET")
        if isinstance(error, OSError) and isinstance(error.errno, int):
            name = errno.errorcode.get(error.errno)
            if name:
                codes.add(name)
    return codes


def is_retriable(exc: BaseException | None) -> bool:
    return exc is not None and bool(error_codes(exc) & RETRIABLE_ERRORS)


def _netloc(hostname: str, port: int | None) -> str:
    if ":" in hostname:
        hostname = f"[{hostname}]"
    return f"{hostname}:{port}" if port else hostname


def host_header(url: str) -> str | None:
    """Return `hostname[:port]` for url, or None when it has no hostname."""
    parts = urlsplit(url)
    if not parts.hostname:
        return None
    return _netloc(parts.hostname, parts.port)


def transport_url(url: str, forward_proxy_url: str | None) -> str:
    """Return the URL the transport connects to.

    With a forward proxy only the hostname and port change; scheme, path and
    query still belong to the logical destination.
    """
    if not forward_proxy_url:
        return url
    proxy = urlsplit(forward_proxy_url)
    if not proxy.hostname:
        return url
    target = urlsplit(url)
    netloc = _netloc(proxy.hostname, proxy.port)
    if target.username:
        userinfo = target.username
        if target.password:
            userinfo = f"{userinfo}:{target.password}"
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit(target._replace(netloc=netloc))


def get_headers(
    args: RequestArgs,
    url: str | None,
    subsegment: Segment | None = None,
) -> dict[str, str]:
    """Compute the outbound header set; caller headers win on collisions."""
    headers: dict[str, str] = {
        "Content-Type": "application/json",
        CORRELATION_HEADER: args.correlation_id or "",
    }
    if url:
        host = host_header(url)
        if host:
            headers["host"] = host
    logger.debug("headers: %s", json.dumps(headers))

    if args.trace_context is not None:
        segment = subsegment or args.trace_context.new_subsegment()
        headers[TRACE_HEADER] = trace_header_value(
            args.trace_context.trace_id,
            segment.id,
        )

    for name, value in (args.headers or {}).items():
        for existing in [key for key in headers if key.lower() == name.lower()]:
            del headers[existing]
        headers[name] = value
    return headers


class InternalHttpsAdapter(HTTPAdapter):
    """HTTPS adapter whose pools trust a supplied SSL context."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs: Any) -> None:
        """Keep the context for every pool manager this adapter builds."""
        self.ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = self.ssl_context
        super().init_poolmanager(*args, **kwargs)


def build_session(settings: AppSettings) -> requests.Session:
    """Build the shared session with one bounded keep-alive pool per scheme."""
    pool_options = {
        "pool_maxsize": settings.max_sockets,
        "pool_block": True,
        # Retries are applied by BaseClient, never inside urllib3.
        "max_retries": 0,
    }
    session = requests.Session()
    session.trust_env = False
    session.mount("http://", HTTPAdapter(**pool_options))

    if settings.disable_internal_https:
        logger.warning("DISABLE_INTERNAL_HTTPS is set.")
        session.mount("https://", HTTPAdapter(**pool_options))
    else:
        context = ssl_context_with_certs(get_cert_options(settings.certs_path))
        session.mount("https://", InternalHttpsAdapter(context, **pool_options))
    return session


class BaseClient:
    """Shared outbound client used by every downstream service client."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        session: requests.Session | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        timeout: float | None = TIMEOUT,
    ) -> None:
        """Create the client; the session is built from settings if omitted."""
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.forward_proxy_url = settings.forward_proxy_url
        self.session = session if session is not None else build_session(settings)
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout

    def close(self) -> None:
        self.session.close()

    def get(self, url, args=None, callback=None, subsegment=None):
        return self.request("GET", url, args, callback, subsegment)

    def post(self, url, args=None, callback=None):
        return self.request("POST", url, args, callback)

    def put(self, url, args=None, callback=None):
        return self.request("PUT", url, args, callback)

    def patch(self, url, args=None, callback=None):
        return self.request("PATCH", url, args, callback)

    def delete(self, url, args=None, callback=None):
        return self.request("DELETE", url, args, callback)

    def request(
        self,
        method: str,
        url: str,
        args: RequestArgs | None = None,
        callback: Callable[[Exception | None, requests.Response | None], object]
        | None = None,
        subsegment: Segment | None = None,
    ) -> requests.Response | None:
        """Issue one logical request, retrying transient network errors.

        Without a callback the response is returned and network errors are
        raised. With a callback, `callback(error, response)` is invoked once
        with the outcome and the response (or None) is returned.
        """
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method {method}")
        args = args or RequestArgs()

        target = transport_url(url, self.forward_proxy_url)
        logger.debug("base_client target uri: %s", target)

        options: dict[str, Any] = {
            "headers": get_headers(args, url, subsegment),
            "timeout": self.timeout,
        }
        if args.payload is not None:
            options["json"] = args.payload
        if args.qs:
            options["params"] = dict(args.qs)

        if callback is None:
            return self._send(method, url, target, options)

        try:
            response = self._send(method, url, target, options)
        except requests.RequestException as exc:
            callback(exc, None)
            return None
        callback(None, response)
        return response

    def _send(
        self,
        method: str,
        url: str,
        target: str,
        options: dict[str, Any],
    ) -> requests.Response:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self.session.request(method, target, **options)
            except requests.RequestException as exc:
                if attempt >= self.max_attempts or not is_retriable(exc):
                    raise
                logger.warning(
                    "%s %s failed with %s (attempt %d of %d), retrying in %.1fs",
                    method,
                    url,
                    ", ".join(sorted(error_codes(exc))),
                    attempt,
                    self.max_attempts,
                    self.retry_delay,
                )
                time.sleep(self.retry_delay)
                continue
            response.attempts = attempt
            return response
