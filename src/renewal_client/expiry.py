"""Classify access credentials as healthy, expiring soon, or expired."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from enum import Enum

import jwt

from .config import TOKEN_REMAINING_HEADER, TOKEN_WARNING_EXPIRING, TOKEN_WARNING_HEADER
from .exceptions import MalformedCredential

logger = logging.getLogger(__name__)


class ExpiryStatus(str, Enum):
    HEALTHY = "healthy"
    EXPIRING_SOON = "expiring-soon"
    EXPIRED = "expired"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    # requests hands back a case-insensitive mapping; plain dicts do not.
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def classify_headers(headers: Mapping[str, str]) -> ExpiryStatus:
    """Inspect the server's advisory headers on a response.

    The warning flag alone decides; the remaining-seconds header is only
    reported.
    """

    warning = _header(headers, TOKEN_WARNING_HEADER)
    if warning is None or warning.strip().lower() != TOKEN_WARNING_EXPIRING:
        return ExpiryStatus.HEALTHY
    remaining = _header(headers, TOKEN_REMAINING_HEADER)
    logger.warning(
        "Access token expiring soon (server reports %s seconds remaining)",
        remaining if remaining is not None else "unknown",
    )
    return ExpiryStatus.EXPIRING_SOON


def decode_expiry(token: str) -> float:
    """Return the ``exp`` claim of a JWT-shaped token as epoch seconds."""

    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise MalformedCredential(f"Access token could not be decoded: {exc}") from exc
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise MalformedCredential("Access token payload has no numeric exp claim")
    return float(exp)


def classify_token(
    token: str | None,
    *,
    lifetime: float = 3600.0,
    warning_ratio: float = 0.25,
    now: float | None = None,
) -> ExpiryStatus:
    """Classify a raw access token by its embedded expiry.

    Anything that cannot be decoded counts as expired so the caller renews.
    """

    if not token:
        return ExpiryStatus.EXPIRED
    try:
        expires_at = decode_expiry(token)
    except MalformedCredential as exc:
        logger.warning("Treating undecodable access token as expired: %s", exc)
        return ExpiryStatus.EXPIRED
    current = time.time() if now is None else now
    remaining = expires_at - current
    if remaining <= 0:
        return ExpiryStatus.EXPIRED
    if remaining <= warning_ratio * lifetime:
        return ExpiryStatus.EXPIRING_SOON
    return ExpiryStatus.HEALTHY


def token_remaining_seconds(token: str | None, *, now: float | None = None) -> float:
    """Seconds until ``token`` expires, ``0`` for missing or malformed tokens."""

    if not token:
        return 0.0
    try:
        expires_at = decode_expiry(token)
    except MalformedCredential:
        return 0.0
    current = time.time() if now is None else now
    return max(0.0, expires_at - current)


__all__ = [
    "ExpiryStatus",
    "classify_headers",
    "classify_token",
    "decode_expiry",
    "token_remaining_seconds",
]
