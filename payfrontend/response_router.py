"""Named page outcomes.

Handlers and request steps refer to outcomes by name (`UNAUTHORISED`,
`SYSTEM_ERROR`, ...). `response()` maps a name to its template and status
code; `RouteOutcome` lets a request step short-circuit into one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from payfrontend.http.context import build_template_context
from payfrontend.http.jinja import TemplateResponseOptions, render_template_response

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Action:
    template: str
    code: int = 200


ACTIONS: Final[dict[str, Action]] = {
    "CHARGE": Action("charge.html.j2"),
    "UNAUTHORISED": Action("errors/unauthorised.html.j2", 403),
    "NOT_FOUND": Action("errors/not_found.html.j2", 404),
    "SYSTEM_ERROR": Action("errors/system_error.html.j2", 500),
}


class RouteOutcome(Exception):  # noqa: N818
    """Raised by a request step to end the request with a named outcome."""

    def __init__(self, action: str, payload: Mapping[str, Any] | None = None) -> None:
        """Create a RouteOutcome for the named action."""
        self.action = action
        self.payload = dict(payload or {})
        super().__init__(action)


def with_analytics_error(extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Analytics payload attached to error pages."""
    analytics: dict[str, Any] = {
        "path": "/error",
        "analytics_id": "Service unknown",
        "type": "Service unknown",
        "payment_provider": "Service unknown",
        "amount": "0.00",
    }
    if extra:
        analytics.update(extra)
    return {"analytics": analytics}


def response(
    request: Request,
    action_name: str,
    options: Mapping[str, Any] | None = None,
) -> Response:
    """Render the page registered for action_name."""
    action = ACTIONS.get(action_name)
    if action is None:
        logger.error("Response router: unknown action %s", action_name)
        action = ACTIONS["SYSTEM_ERROR"]

    context = build_template_context(request, options)
    return render_template_response(
        request=request,
        template_name=action.template,
        context=context,
        options=TemplateResponseOptions(status_code=action.code),
    )
