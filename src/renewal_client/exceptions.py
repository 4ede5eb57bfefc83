"""Custom exception hierarchy for the renewal client."""
from __future__ import annotations

from typing import Any


class RenewalClientError(RuntimeError):
    """Base error for renewal client failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(RenewalClientError):
    """Raised when the server rejects the access credential."""


class RequestError(RenewalClientError):
    """Raised when an HTTP request cannot be fulfilled."""


class UnexpectedResponseError(RenewalClientError):
    """Raised when the API returns an unexpected payload structure."""


class MalformedCredential(RenewalClientError):
    """Raised when an access token cannot be decoded."""


class RenewalError(AuthenticationError):
    """Base for failures of the credential renewal cycle."""


class MissingRenewalCredential(RenewalError):
    """Raised when no renewal credential is stored at renewal time."""


class RenewalExchangeFailed(RenewalError):
    """Raised when the renewal call errors or returns a malformed body."""


class ReauthenticationRequired(RenewalError):
    """Raised for requests queued behind a renewal that failed."""
