"""Explicit distributed-trace context.

The trace context for an inbound request is parsed once from the
`X-Amzn-Trace-Id` header, stored on `request.state.trace_context` and passed
by reference to the downstream clients. Nothing here is global.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.types import ASGIApp, Receive, Scope, Send

TRACE_HEADER: Final[str] = "X-Amzn-Trace-Id"
SEGMENT_ID_BYTES: Final[int] = 8


def new_segment_id() -> str:
    """Return a random 16 hex digit segment id."""
    return secrets.token_hex(SEGMENT_ID_BYTES)


@dataclass(frozen=True, slots=True)
class Segment:
    """A unit of traced work under a trace id."""

    name: str
    trace_id: str
    id: str


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Active trace for one inbound request."""

    trace_id: str

    def new_subsegment(self, name: str = "_request") -> Segment:
        return Segment(name=name, trace_id=self.trace_id, id=new_segment_id())


def trace_header_value(trace_id: str, parent_id: str) -> str:
    return f"Root={trace_id};Parent={parent_id};Sampled=1"


def parse_trace_header(value: str | None) -> TraceContext | None:
    """Return the trace rooted at the header's `Root` field, or None.

    Outbound calls always start a fresh child segment, so `Parent` and
    `Sampled` are not kept.
    """
    if not value:
        return None

    fields: dict[str, str] = {}
    for part in value.split(";"):
        key, sep, field_value = part.strip().partition("=")
        if sep:
            fields[key.strip()] = field_value.strip()

    trace_id = fields.get("Root")
    if not trace_id:
        return None
    return TraceContext(trace_id=trace_id)


def trace_context_from_request(request: Request) -> TraceContext | None:
    value = getattr(request.state, "trace_context", None)
    return value if isinstance(value, TraceContext) else None


class TraceContextMiddleware:
    """Attach the inbound trace context to the request scope."""

    def __init__(self, app: ASGIApp) -> None:
        """Store the downstream ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Parse the trace header into `scope["state"]["trace_context"]`."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        header_name = TRACE_HEADER.lower().encode("latin-1")
        raw = None
        for name, value in scope.get("headers") or []:
            if name.lower() == header_name:
                raw = value.decode("latin-1")
                break

        state = scope.setdefault("state", {})
        state["trace_context"] = parse_trace_header(raw)
        await self.app(scope, receive, send)
