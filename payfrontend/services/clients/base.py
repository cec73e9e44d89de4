"""Shared pieces of the downstream service clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vtjson import ValidationError, validate

if TYPE_CHECKING:
    import requests


class ServiceClientError(RuntimeError):
    """Raised when a downstream service answers with an unusable response."""

    service: str = "service"

    def __init__(self, url: str, status_code: int | None, message: str) -> None:
        """Create a ServiceClientError for a call to url."""
        self.url = url
        self.status_code = status_code
        self.message = message
        status = "" if status_code is None else f" (HTTP {status_code})"
        super().__init__(f"{self.service} call to {url} failed{status}: {message}")


def json_or_raise(
    response: requests.Response,
    *,
    url: str,
    schema: object,
    name: str,
    error_class: type[ServiceClientError],
) -> dict:
    """Return the validated JSON body of a 200 response, raise otherwise."""
    if response.status_code != 200:
        try:
            body = response.json()
            message = body.get("message") if isinstance(body, dict) else None
        except ValueError:
            message = None
        raise error_class(url, response.status_code, str(message or response.reason))

    try:
        body = response.json()
    except ValueError as e:
        raise error_class(url, response.status_code, "body is not json") from e
    try:
        validate(schema, body, name=name)
    except ValidationError as e:
        raise error_class(url, response.status_code, str(e)) from e
    return body
