"""Credential storage backends."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .config import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CredentialPair:
    """Access credential together with the renewal credential that renews it."""

    access_token: str
    refresh_token: str


class CredentialStore(ABC):
    """Key-value persistence for the two credential fields.

    Pair-level helpers hold the store lock across both keys so no reader can
    observe an old access token next to a new renewal token.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or ``None``."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Drop ``key``; missing keys are ignored."""

    def get_pair(self) -> CredentialPair | None:
        with self._lock:
            access = self.get(ACCESS_TOKEN_KEY)
            refresh = self.get(REFRESH_TOKEN_KEY)
        if not access or not refresh:
            return None
        return CredentialPair(access_token=access, refresh_token=refresh)

    def set_pair(self, pair: CredentialPair) -> None:
        with self._lock:
            self.set(ACCESS_TOKEN_KEY, pair.access_token)
            self.set(REFRESH_TOKEN_KEY, pair.refresh_token)

    def clear(self) -> None:
        with self._lock:
            self.remove(ACCESS_TOKEN_KEY)
            self.remove(REFRESH_TOKEN_KEY)


class MemoryCredentialStore(CredentialStore):
    """Process-local store, the default for library use."""

    def __init__(self, pair: CredentialPair | None = None) -> None:
        super().__init__()
        self._values: dict[str, str] = {}
        if pair is not None:
            self.set_pair(pair)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class FileCredentialStore(CredentialStore):
    """JSON file store used by the CLI.

    Every write replaces the whole file, so the pair on disk is always
    consistent; the file is created with owner-only permissions.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path.expanduser()

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) and value else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._write(data)

    def set_pair(self, pair: CredentialPair) -> None:
        with self._lock:
            data = self._load()
            data[ACCESS_TOKEN_KEY] = pair.access_token
            data[REFRESH_TOKEN_KEY] = pair.refresh_token
            self._write(data)

    def clear(self) -> None:
        with self._lock:
            data = self._load()
            removed = [data.pop(key, None) for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY)]
            if any(value is not None for value in removed):
                self._write(data)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable credentials file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".credentials-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=True, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = [
    "CredentialPair",
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
]
