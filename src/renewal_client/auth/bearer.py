"""Bearer token authentication backed by a credential store."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass

from ..config import ACCESS_TOKEN_KEY
from ..store import CredentialStore
from .base import AuthStrategy


@dataclass(slots=True)
class StoredBearerAuth(AuthStrategy):
    """Apply whatever access token the store holds at send time."""

    store: CredentialStore

    def apply(self, headers: MutableMapping[str, str]) -> None:
        token = self.store.get(ACCESS_TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            headers.pop("Authorization", None)
