"""High-level client that keeps its access credential renewed."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin, urlparse

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .auth.base import AuthStrategy
from .auth.bearer import StoredBearerAuth
from .config import ClientConfig, RequestDescriptor
from .coordinator import RenewalCoordinator
from .escalation import FailureEscalator, Navigator
from .exceptions import AuthenticationError
from .exchange import RefreshExchange
from .http import HttpResponse
from .store import CredentialPair, CredentialStore, MemoryCredentialStore
from .transport import TransportAdapter

logger = logging.getLogger(__name__)


class RenewalClient:
    """Issue API requests with an access credential that renews itself.

    Build one instance per process and share it; it owns the only
    `RenewalCoordinator` for its credential store.
    """

    def __init__(
        self,
        *,
        base_url: str,
        store: CredentialStore | None = None,
        navigator: Navigator | None = None,
        verify_ssl: bool | str = True,
        timeout: float = 30.0,
        default_headers: Mapping[str, str] | None = None,
        query_defaults: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        self.config = config or ClientConfig(
            base_url=base_url.rstrip("/"),
            verify_ssl=verify_ssl,
            timeout=timeout,
            default_headers=default_headers,
            query_defaults=query_defaults,
        )
        self._suppress_insecure_warning_if_needed()
        self._session = session or requests.Session()
        self.store = store or MemoryCredentialStore()
        self._auth: AuthStrategy = StoredBearerAuth(self.store)
        self.transport = TransportAdapter(self._session, self.config)
        self.escalator = FailureEscalator(
            self.store,
            navigator=navigator,
            login_url=self.config.login_url,
            redirect_delay=self.config.redirect_delay,
        )
        self.coordinator = RenewalCoordinator(
            self.store,
            RefreshExchange(self._session, self.config),
            self.transport.send,
            self.escalator,
            token_lifetime=self.config.token_lifetime,
            warning_ratio=self.config.warning_ratio,
        )
        if self.config.check_token_expiry:
            self.transport.add_before_send(self.coordinator.maybe_renew_for_token)
        self.transport.add_before_send(self._attach_credentials)
        self.transport.add_after_receive(self.coordinator.observe_response)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> RenewalClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Public API --------------------------------------------------------------
    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_payload: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return self.send(
            method, path, params=params, json_payload=json_payload, headers=headers
        ).data

    def send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_payload: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        """Like `request` but return the full response envelope."""

        descriptor = RequestDescriptor(
            method=method,
            url=self._resolve_url(path),
            params=self._prepare_params(params),
            headers=self._prepare_headers(headers),
            payload=json_payload,
        )
        try:
            return self.transport.send(descriptor)
        except AuthenticationError:
            return self.coordinator.handle_unauthorized(descriptor)

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, payload: Mapping[str, Any], **kwargs: Any) -> Any:
        return self.request("POST", path, json_payload=payload, **kwargs)

    def set_credentials(self, pair: CredentialPair) -> None:
        """Store a credential pair obtained elsewhere, e.g. after login."""

        self.store.set_pair(pair)
        self.escalator.reset()

    def close(self) -> None:
        self._session.close()

    # Internal helpers -------------------------------------------------------
    def _attach_credentials(self, descriptor: RequestDescriptor) -> None:
        self._auth.apply(descriptor.headers)

    def _resolve_url(self, path: str) -> str:
        parsed = urlparse(path)
        if parsed.scheme and parsed.netloc:
            return path
        return urljoin(f"{self.config.base_url}/", path.lstrip("/"))

    def _prepare_headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        merged = self.config.resolved_headers()
        if headers:
            merged.update(headers)
        return merged

    def _prepare_params(self, params: Mapping[str, str] | None) -> dict[str, str]:
        merged = self.config.resolved_query()
        if params:
            merged.update(params)
        return merged

    def _suppress_insecure_warning_if_needed(self) -> None:
        if isinstance(self.config.verify_ssl, bool) and not self.config.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)
