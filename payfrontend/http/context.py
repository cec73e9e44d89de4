"""Template context shared by every rendered page."""

from __future__ import annotations

from typing import TYPE_CHECKING

from payfrontend.http.cookie_session import load_session
from payfrontend.http.jinja import ASSET_PATH, static_url

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request


def build_template_context(
    request: Request,
    extra: Mapping[str, object] | None = None,
) -> dict[str, object]:
    """Build the shared template context (includes `request`)."""
    session = load_session(request)
    state = request.state
    context: dict[str, object] = {
        "request": request,
        "csrf_token": session.get_csrf_token(),
        "asset_path": getattr(state, "asset_path", ASSET_PATH),
        "analytics_tracking_id": getattr(state, "analytics_tracking_id", ""),
        "service": getattr(state, "service", None),
        "static_url": static_url,
    }
    if extra:
        context.update(extra)
    return context
