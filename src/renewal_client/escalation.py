"""Terminal handling for a renewal cycle that failed."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .store import CredentialStore

logger = logging.getLogger(__name__)

Navigator = Callable[[str], None]


def log_navigator(url: str) -> None:
    logger.warning("Re-authentication required; continue at %s", url)


class FailureEscalator:
    """Wipe stored credentials and send the user back to re-authenticate.

    Only the first `escalate` of a failure cycle acts; `reset` starts a new
    cycle once credentials are valid again.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        navigator: Navigator | None = None,
        login_url: str = "/login",
        redirect_delay: float = 1.0,
    ) -> None:
        self._store = store
        self._navigator = navigator or log_navigator
        self._login_url = login_url
        self._redirect_delay = redirect_delay
        self._lock = threading.Lock()
        self._escalated = False
        self.redirect_timer: threading.Timer | None = None

    @property
    def escalated(self) -> bool:
        return self._escalated

    def escalate(self, error: BaseException) -> bool:
        with self._lock:
            if self._escalated:
                logger.info("Failure already escalated; ignoring %s", error.__class__.__name__)
                return False
            self._escalated = True
        logger.error("Credential renewal failed, clearing stored credentials: %s", error)
        self._store.clear()
        timer = threading.Timer(self._redirect_delay, self._navigator, args=(self._login_url,))
        timer.daemon = True
        self.redirect_timer = timer
        timer.start()
        return True

    def reset(self) -> None:
        with self._lock:
            self._escalated = False
