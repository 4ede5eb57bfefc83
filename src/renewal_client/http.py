"""HTTP utilities shared by the transport and the renewal exchange."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from requests import Response, Session

from .exceptions import AuthenticationError, RequestError, UnexpectedResponseError


@dataclass(slots=True)
class HttpResponse:
    """Typed response wrapper with helper accessors."""

    status_code: int
    data: Any
    headers: Mapping[str, str]


def ensure_success(response: Response, *, unauthorized_status: int = 401) -> None:
    """Raise `AuthenticationError` or `RequestError` if the response signals a failure."""

    if 200 <= response.status_code < 300:
        return
    message = f"API error {response.status_code}: {response.text[:200]}"
    if response.status_code == unauthorized_status:
        raise AuthenticationError(message, status_code=response.status_code, details=response.text)
    raise RequestError(message, status_code=response.status_code, details=response.text)


def parse_json(response: Response) -> Any:
    """Parse JSON with helpful error context."""

    try:
        return response.json()
    except ValueError as exc:
        raise UnexpectedResponseError("Response did not contain valid JSON") from exc


def request(
    session: Session,
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    headers: MutableMapping[str, str] | None = None,
    json_payload: Mapping[str, Any] | None = None,
    expect_json: bool = True,
    timeout: float | tuple[float, float] | None = None,
    verify: bool | str = True,
    unauthorized_status: int = 401,
) -> HttpResponse:
    """Make a request and return a parsed response envelope."""

    response = session.request(
        method=method,
        url=url,
        params=params,
        headers=headers,
        json=json_payload,
        timeout=timeout,
        verify=verify,
    )
    ensure_success(response, unauthorized_status=unauthorized_status)

    data: Any = None
    if response.content:
        data = parse_json(response) if expect_json else response.text

    return HttpResponse(status_code=response.status_code, data=data, headers=response.headers)
