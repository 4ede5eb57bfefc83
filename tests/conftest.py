import base64
import json
import time

import pytest


def _segment(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@pytest.fixture
def make_token():
    """Build an unsigned JWT-shaped token expiring ``expires_in`` seconds from now."""

    def _make(expires_in: float = 3600.0, **claims) -> str:
        payload = {"sub": "user-1", "exp": int(time.time() + expires_in), **claims}
        return f"{_segment({'alg': 'HS512', 'typ': 'JWT'})}.{_segment(payload)}.c2lnbmF0dXJl"

    return _make
