"""Single-flight renewal of the access credential.

The coordinator is either idle or renewing. Whatever notices the need for a
renewal first (an expiry warning on a response, or a request rejected with
the authorization-failure status) claims the renewal under a lock; requests
rejected while the renewal runs wait in a FIFO queue and are resubmitted, or
rejected, once it settles. The queue is drained only after the state is back
to idle, and every queued request is settled exactly once.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum

from .config import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, RequestDescriptor
from .escalation import FailureEscalator
from .exceptions import MissingRenewalCredential, ReauthenticationRequired
from .expiry import ExpiryStatus, classify_headers, classify_token
from .http import HttpResponse
from .store import CredentialPair, CredentialStore

logger = logging.getLogger(__name__)

Exchange = Callable[[str], CredentialPair]
Resubmit = Callable[[RequestDescriptor], HttpResponse]


class CoordinatorState(str, Enum):
    IDLE = "idle"
    RENEWING = "renewing"


@dataclass(slots=True)
class PendingRequest:
    """A request parked until the running renewal settles."""

    descriptor: RequestDescriptor
    future: Future[HttpResponse] = field(default_factory=Future)


class RenewalCoordinator:
    """Own the renewal state, the pending-request queue and the renewal protocol.

    ``exchange`` performs the network renewal, ``resubmit`` sends a request
    again without routing authorization failures back here, and
    ``escalator`` handles a failed cycle.
    """

    def __init__(
        self,
        store: CredentialStore,
        exchange: Exchange,
        resubmit: Resubmit,
        escalator: FailureEscalator,
        *,
        token_lifetime: float = 3600.0,
        warning_ratio: float = 0.25,
    ) -> None:
        self._store = store
        self._exchange = exchange
        self._resubmit = resubmit
        self._escalator = escalator
        self._token_lifetime = token_lifetime
        self._warning_ratio = warning_ratio
        self._lock = threading.Lock()
        self._state = CoordinatorState.IDLE
        self._queue: deque[PendingRequest] = deque()
        self._worker: threading.Thread | None = None

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    # Triggers ----------------------------------------------------------------
    def observe_response(self, response: HttpResponse) -> None:
        """After-receive handler: renew ahead of time when the server warns."""

        if classify_headers(response.headers) is ExpiryStatus.EXPIRING_SOON:
            self.renew_proactively()

    def maybe_renew_for_token(self, descriptor: RequestDescriptor) -> None:
        """Before-send handler: renew when the stored token is close to expiry."""

        token = self._store.get(ACCESS_TOKEN_KEY)
        if not token:
            return
        status = classify_token(
            token, lifetime=self._token_lifetime, warning_ratio=self._warning_ratio
        )
        if status is not ExpiryStatus.HEALTHY:
            logger.info("Stored access token is %s before %s", status.value, descriptor.url)
            self.renew_proactively()

    def renew_proactively(self) -> threading.Thread | None:
        """Start a background renewal unless one is already running."""

        if not self._claim():
            logger.debug("Renewal already in progress; nothing to do")
            return None
        worker = threading.Thread(target=self._proactive_cycle, name="credential-renewal", daemon=True)
        self._worker = worker
        worker.start()
        return worker

    def handle_unauthorized(self, descriptor: RequestDescriptor) -> HttpResponse:
        """Recover a request the server rejected for its credential.

        The first caller renews and retries its own request once; callers
        arriving during the renewal block until the queue is drained.
        """

        with self._lock:
            if self._state is CoordinatorState.RENEWING:
                pending: PendingRequest | None = PendingRequest(descriptor)
                self._queue.append(pending)
                position = len(self._queue)
            else:
                self._state = CoordinatorState.RENEWING
                pending = None

        if pending is not None:
            logger.info(
                "Renewal in progress; queued %s %s at position %d",
                descriptor.method.upper(),
                descriptor.url,
                position,
            )
            return pending.future.result()

        logger.info(
            "Access token rejected for %s %s; renewing", descriptor.method.upper(), descriptor.url
        )
        queued, error = self._renew()
        if error is not None:
            self._fail(queued, error)
            raise error
        try:
            return self._resubmit(descriptor)
        finally:
            self._drain(queued)

    def renew_now(self) -> bool:
        """Renew synchronously; ``False`` if another renewal is already running."""

        if not self._claim():
            return False
        queued, error = self._renew()
        if error is not None:
            self._fail(queued, error)
            raise error
        self._drain(queued)
        return True

    def join(self, timeout: float | None = None) -> None:
        """Wait for the latest background renewal, if any."""

        worker = self._worker
        if worker is not None:
            worker.join(timeout)

    # Renewal cycle -------------------------------------------------------------
    def _claim(self) -> bool:
        with self._lock:
            if self._state is CoordinatorState.RENEWING:
                return False
            self._state = CoordinatorState.RENEWING
            return True

    def _proactive_cycle(self) -> None:
        queued, error = self._renew()
        if error is not None:
            self._fail(queued, error)
        else:
            self._drain(queued)

    def _renew(self) -> tuple[list[PendingRequest], Exception | None]:
        error: Exception | None = None
        try:
            self._exchange_pair()
        except Exception as exc:  # any failure ends the cycle on the failure path
            error = exc
        else:
            self._escalator.reset()
            logger.info("Access token renewed")

        with self._lock:
            self._state = CoordinatorState.IDLE
            queued = list(self._queue)
            self._queue.clear()
        return queued, error

    def _exchange_pair(self) -> None:
        refresh_token = self._store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            raise MissingRenewalCredential("No renewal credential stored; re-authentication required")
        pair = self._exchange(refresh_token)
        self._store.set_pair(pair)

    def _fail(self, queued: list[PendingRequest], error: Exception) -> None:
        try:
            self._escalator.escalate(error)
        except Exception:
            logger.exception("Escalating the failed renewal raised; queued requests are still rejected")
        finally:
            self._reject(queued, error)

    def _drain(self, queued: list[PendingRequest]) -> None:
        for pending in queued:
            try:
                response = self._resubmit(pending.descriptor)
            except Exception as exc:
                logger.warning(
                    "Resubmitted %s %s failed: %s",
                    pending.descriptor.method.upper(),
                    pending.descriptor.url,
                    exc,
                )
                pending.future.set_exception(exc)
            else:
                pending.future.set_result(response)

    def _reject(self, queued: list[PendingRequest], error: Exception) -> None:
        if queued:
            logger.warning("Rejecting %d queued request(s) after failed renewal", len(queued))
        for pending in queued:
            rejection = ReauthenticationRequired(
                "Credential renewal failed, re-authentication required",
                details=str(error),
            )
            rejection.__cause__ = error
            pending.future.set_exception(rejection)
