"""Request pipeline: before-send handlers, the HTTP call, after-receive handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

import requests

from .config import ClientConfig, RequestDescriptor
from .exceptions import RequestError
from .http import HttpResponse
from .http import request as http_request

logger = logging.getLogger(__name__)

BeforeSend = Callable[[RequestDescriptor], None]
AfterReceive = Callable[[HttpResponse], None]


class TransportAdapter:
    """Send requests through an ordered list of hooks.

    Handlers run in registration order. Before-send handlers may mutate the
    descriptor (its headers in particular); after-receive handlers only see
    successful responses. Failures are raised: `AuthenticationError` for the
    configured authorization-failure status, `RequestError` otherwise.
    """

    def __init__(
        self,
        session: requests.Session,
        config: ClientConfig,
        *,
        before_send: Iterable[BeforeSend] = (),
        after_receive: Iterable[AfterReceive] = (),
    ) -> None:
        self._session = session
        self._config = config
        self._before_send: list[BeforeSend] = list(before_send)
        self._after_receive: list[AfterReceive] = list(after_receive)

    def add_before_send(self, handler: BeforeSend) -> None:
        self._before_send.append(handler)

    def add_after_receive(self, handler: AfterReceive) -> None:
        self._after_receive.append(handler)

    def send(self, descriptor: RequestDescriptor) -> HttpResponse:
        for handler in self._before_send:
            handler(descriptor)
        logger.info("Request %s %s", descriptor.method.upper(), descriptor.url)
        try:
            response = http_request(
                self._session,
                descriptor.method,
                descriptor.url,
                params=descriptor.params,
                headers=descriptor.headers,
                json_payload=descriptor.payload,
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                unauthorized_status=self._config.unauthorized_status,
            )
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise RequestError(f"Failed to communicate with API: {reason}", details=reason) from exc
        for hook in self._after_receive:
            hook(response)
        return response
