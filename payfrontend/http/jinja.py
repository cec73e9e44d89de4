"""Jinja2 template rendering helpers for the payment pages."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from functools import cache, lru_cache
from os import environ
from pathlib import Path
from typing import TYPE_CHECKING, Final

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from starlette.templating import Jinja2Templates

from payfrontend.http.settings import default_static_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response

TEMPLATES_DIR_ENV: Final[str] = "PAYFRONTEND_TEMPLATES_DIR"
ASSET_PATH: Final[str] = "/public/"
_MISSING_REQUEST_ERROR: Final[str] = "context must include Request under 'request'"
_STATIC_URL_PARAM: Final[str] = "v"
_STATIC_TOKEN_CACHE_MAX: int = 1024


def templates_dir() -> Path:
    """Return the Jinja2 templates directory path."""
    raw = environ.get(TEMPLATES_DIR_ENV, "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path(__file__).resolve().parents[1] / "templates"


@lru_cache(maxsize=_STATIC_TOKEN_CACHE_MAX)
def _static_file_token(rel_path: str) -> str | None:
    """Return a cache-buster token for a file under the static directory."""
    rel_obj = Path(rel_path.replace("\\", "/"))
    if rel_obj.is_absolute() or ".." in rel_obj.parts:
        return None

    static_dir = default_static_dir().resolve()
    file_path = (static_dir / rel_obj).resolve()
    try:
        file_path.relative_to(static_dir)
        content = file_path.read_bytes()
    except (ValueError, OSError):
        return None

    digest = hashlib.sha256(content).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")[:16]


def static_url(rel_path: str) -> str:
    """Return the `/public` URL of an asset, with a content token if it exists."""
    rel_path = rel_path.lstrip("/")
    url = ASSET_PATH + rel_path
    token = _static_file_token(rel_path)
    if token is None:
        return url
    return f"{url}?{_STATIC_URL_PARAM}={token}"


def format_amount(pence: object) -> str:
    """Format an amount in pence as pounds, e.g. 1050 -> "10.50"."""
    if not isinstance(pence, int):
        return ""
    return f"{pence // 100}.{pence % 100:02d}"


def default_environment() -> Environment:
    """Return a Jinja2 environment bound to the templates directory."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir())),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        undefined=StrictUndefined,
    )
    env.filters["amount"] = format_amount
    env.globals.update({"static_url": static_url})
    return env


@cache
def default_templates() -> Jinja2Templates:
    """Return the process-wide Jinja2Templates instance."""
    return Jinja2Templates(env=default_environment())


@dataclass(frozen=True)
class TemplateResponseOptions:
    """Options for building a Jinja2 template response."""

    status_code: int = 200
    headers: Mapping[str, str] | None = None


def render_template_response(
    *,
    request: Request,
    template_name: str,
    context: Mapping[str, object],
    options: TemplateResponseOptions | None = None,
    templates: Jinja2Templates | None = None,
) -> Response:
    """Render a template and return a Starlette TemplateResponse."""
    opts = options or TemplateResponseOptions()
    context_dict = dict(context)
    if "request" not in context_dict:
        raise ValueError(_MISSING_REQUEST_ERROR)
    return (templates or default_templates()).TemplateResponse(
        request=request,
        name=template_name,
        context=context_dict,
        status_code=opts.status_code,
        headers=opts.headers,
    )
