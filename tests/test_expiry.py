import base64
import time

import pytest
from requests.structures import CaseInsensitiveDict

from renewal_client.exceptions import MalformedCredential
from renewal_client.expiry import (
    ExpiryStatus,
    classify_headers,
    classify_token,
    decode_expiry,
    token_remaining_seconds,
)

HEADER = base64.urlsafe_b64encode(b'{"alg": "HS512", "typ": "JWT"}').rstrip(b"=").decode("ascii")
SIGNATURE = "c2lnbmF0dXJl"


def test_warning_header_marks_token_expiring_soon():
    headers = CaseInsensitiveDict({"x-token-warning": "expiring-soon", "x-token-remaining": "120"})

    assert classify_headers(headers) is ExpiryStatus.EXPIRING_SOON


def test_remaining_seconds_header_alone_does_not_trigger():
    assert classify_headers({"X-Token-Remaining": "5"}) is ExpiryStatus.HEALTHY


def test_warning_header_ignores_remaining_value():
    headers = {"X-TOKEN-WARNING": "expiring-soon", "X-Token-Remaining": "99999"}

    assert classify_headers(headers) is ExpiryStatus.EXPIRING_SOON


def test_unknown_warning_value_is_healthy():
    assert classify_headers({"X-Token-Warning": "ok"}) is ExpiryStatus.HEALTHY


def test_fresh_token_is_healthy(make_token):
    assert classify_token(make_token(3600)) is ExpiryStatus.HEALTHY


def test_token_inside_last_quarter_is_expiring_soon(make_token):
    token = make_token(600)

    assert classify_token(token, lifetime=3600, warning_ratio=0.25) is ExpiryStatus.EXPIRING_SOON


def test_past_expiry_is_expired(make_token):
    assert classify_token(make_token(-1)) is ExpiryStatus.EXPIRED


def test_expiry_boundary_uses_supplied_clock(make_token):
    token = make_token(0)
    expires_at = decode_expiry(token)

    assert classify_token(token, now=expires_at) is ExpiryStatus.EXPIRED
    assert classify_token(token, now=expires_at - 900) is ExpiryStatus.EXPIRING_SOON
    assert classify_token(token, now=expires_at - 901) is ExpiryStatus.HEALTHY


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        "a.b",
        "header.!!!!.sig",
        f"{HEADER}.!!!!.{SIGNATURE}",
        f"{HEADER}.bm90IGpzb24.{SIGNATURE}",
        f"{HEADER}.WzEsIDJd.{SIGNATURE}",
        f"{HEADER}.eyJzdWIiOiAieCJ9.{SIGNATURE}",
        "",
        None,
    ],
)
def test_malformed_tokens_are_treated_as_expired(token):
    assert classify_token(token) is ExpiryStatus.EXPIRED


def test_decode_expiry_rejects_missing_exp():
    with pytest.raises(MalformedCredential, match="no numeric exp"):
        decode_expiry(f"{HEADER}.eyJzdWIiOiAieCJ9.{SIGNATURE}")


def test_decode_expiry_rejects_non_numeric_exp(make_token):
    token = make_token(exp="tomorrow")

    with pytest.raises(MalformedCredential, match="no numeric exp"):
        decode_expiry(token)


def test_decode_expiry_ignores_signature(make_token):
    token = make_token(120)

    assert decode_expiry(token) == pytest.approx(time.time() + 120, abs=5)


def test_remaining_seconds(make_token):
    remaining = token_remaining_seconds(make_token(120))

    assert 100 < remaining <= 120
    assert token_remaining_seconds(make_token(-30)) == 0.0
    assert token_remaining_seconds("garbage") == 0.0
    assert token_remaining_seconds(None, now=time.time()) == 0.0
