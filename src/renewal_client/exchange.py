"""The renewal exchange: trade a renewal credential for a fresh pair."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import requests

from .config import (
    ACCESS_RESPONSE_FIELD,
    REFRESH_REQUEST_FIELD,
    REFRESH_RESPONSE_FIELD,
    ClientConfig,
)
from .exceptions import RenewalClientError, RenewalExchangeFailed
from .http import request as http_request
from .store import CredentialPair

logger = logging.getLogger(__name__)


class RefreshExchange:
    """POST the renewal credential to the renewal endpoint.

    The call bypasses the transport pipeline: it carries no access token and
    an authorization failure here is a renewal failure, not a new trigger.
    """

    def __init__(self, session: requests.Session, config: ClientConfig) -> None:
        self._session = session
        self._config = config

    def __call__(self, refresh_token: str) -> CredentialPair:
        url = self._config.refresh_url()
        logger.info("Renewing access token via %s", url)
        try:
            response = http_request(
                self._session,
                "POST",
                url,
                headers=self._config.resolved_headers(),
                json_payload={REFRESH_REQUEST_FIELD: refresh_token},
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                unauthorized_status=self._config.unauthorized_status,
            )
        except RenewalClientError as exc:
            raise RenewalExchangeFailed(
                f"Renewal request was rejected: {exc}",
                status_code=exc.status_code,
                details=exc.details,
            ) from exc
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise RenewalExchangeFailed(
                f"Failed to reach renewal endpoint: {reason}", details=reason
            ) from exc
        return _parse_pair(response.data)


def _parse_pair(payload: object) -> CredentialPair:
    if not isinstance(payload, Mapping):
        raise RenewalExchangeFailed("Renewal response body is not a JSON object", details=payload)
    access = payload.get(ACCESS_RESPONSE_FIELD)
    refresh = payload.get(REFRESH_RESPONSE_FIELD)
    missing = [
        name
        for name, value in ((ACCESS_RESPONSE_FIELD, access), (REFRESH_RESPONSE_FIELD, refresh))
        if not isinstance(value, str) or not value
    ]
    if missing:
        raise RenewalExchangeFailed(
            f"Renewal response missing fields: {', '.join(missing)}",
            details=sorted(payload),
        )
    return CredentialPair(access_token=access, refresh_token=refresh)
