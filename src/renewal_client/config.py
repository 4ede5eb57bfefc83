"""Configuration helpers for the renewal client."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from urllib.parse import urljoin

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"

TOKEN_WARNING_HEADER = "X-Token-Warning"
TOKEN_REMAINING_HEADER = "X-Token-Remaining"
TOKEN_WARNING_EXPIRING = "expiring-soon"

# Field names of the renewal exchange, both directions.
REFRESH_REQUEST_FIELD = "refresh_token"
ACCESS_RESPONSE_FIELD = "access_token"
REFRESH_RESPONSE_FIELD = "refresh_token"


@dataclass(slots=True)
class ClientConfig:
    """Typed configuration for `RenewalClient`."""

    base_url: str
    verify_ssl: bool | str = True
    timeout: float = 30.0
    default_headers: Mapping[str, str] | None = None
    query_defaults: Mapping[str, str] | None = None
    refresh_path: str = "/api/auth/refresh"
    login_url: str = "/login"
    token_lifetime: float = 3600.0
    warning_ratio: float = 0.25
    redirect_delay: float = 1.0
    unauthorized_status: int = 401
    check_token_expiry: bool = False

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.default_headers:
            headers.update(self.default_headers)
        return headers

    def resolved_query(self) -> dict[str, str]:
        return dict(self.query_defaults or {})

    def refresh_url(self) -> str:
        return urljoin(f"{self.base_url}/", self.refresh_path.lstrip("/"))


@dataclass(slots=True)
class RequestDescriptor:
    """Everything needed to (re)issue one outbound request."""

    method: str
    url: str
    params: Mapping[str, str] | None = None
    headers: MutableMapping[str, str] = field(default_factory=dict)
    payload: Mapping[str, object] | None = None
