"""Single-shot HTTP execution against the upstream API."""

from __future__ import annotations

import logging
import socket
import threading
from enum import Enum
from typing import Any

import requests
from urllib3.exceptions import NameResolutionError, NewConnectionError, ReadTimeoutError

from .builder import OutboundRequest

LOGGER = logging.getLogger(__name__)


class TransportFailureKind(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    DNS_FAILURE = "dns_failure"
    CONNECTION_ERROR = "connection_error"
    OTHER = "other"


class TransportFailure(RuntimeError):
    """Raised when a request never produced an HTTP response."""

    def __init__(self, kind: TransportFailureKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


def _iter_causes(exc: BaseException):
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for arg in getattr(current, "args", ()):
            if isinstance(arg, BaseException):
                stack.append(arg)
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            stack.append(reason)
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                stack.append(linked)


def classify_connection_error(exc: requests.ConnectionError) -> TransportFailureKind:
    """Tell stalled reads, refused connections and DNS failures apart from other socket errors.

    requests re-raises a read timeout hit while streaming the body as a
    ``ConnectionError``, so the cause chain is searched for timeouts first.
    """

    causes = list(_iter_causes(exc))
    # NewConnectionError subclasses urllib3's TimeoutError; it is a connect failure here.
    if any(
        isinstance(cause, (ReadTimeoutError, TimeoutError)) and not isinstance(cause, NewConnectionError)
        for cause in causes
    ):
        return TransportFailureKind.TIMEOUT
    for cause in causes:
        if isinstance(cause, (NameResolutionError, socket.gaierror)):
            return TransportFailureKind.DNS_FAILURE
        if isinstance(cause, ConnectionRefusedError):
            return TransportFailureKind.CONNECTION_REFUSED
    text = str(exc)
    if "Name or service not known" in text or "nodename nor servname" in text:
        return TransportFailureKind.DNS_FAILURE
    if "Connection refused" in text:
        return TransportFailureKind.CONNECTION_REFUSED
    if "Read timed out" in text:
        return TransportFailureKind.TIMEOUT
    return TransportFailureKind.CONNECTION_ERROR


def _failure(exc: requests.RequestException, request: OutboundRequest) -> TransportFailure:
    # ConnectTimeout is also a ConnectionError, so timeouts are checked first.
    if isinstance(exc, requests.Timeout):
        kind = TransportFailureKind.TIMEOUT
    elif isinstance(exc, requests.ConnectionError):
        kind = classify_connection_error(exc)
        LOGGER.debug("Connection to %s failed (%s)", request.url, kind.value)
    else:
        kind = TransportFailureKind.OTHER
    if kind is TransportFailureKind.TIMEOUT:
        return _timed_out(request)
    return TransportFailure(kind, str(exc))


def _timed_out(request: OutboundRequest) -> TransportFailure:
    return TransportFailure(TransportFailureKind.TIMEOUT, f"Request timed out after {request.timeout}s")


class TransportClient:
    """Executes exactly one HTTP call per ``OutboundRequest``.

    ``request.timeout`` bounds the whole call. requests only applies it to
    each socket read, so the call runs on a worker thread that the caller
    stops waiting for once the deadline passes.
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def _send(self, request: OutboundRequest, state: dict[str, Any]) -> requests.Response:
        try:
            response = self.session.request(
                request.method,
                request.full_url,
                headers=dict(request.headers),
                json=dict(request.body) if request.body is not None else None,
                timeout=request.timeout,
                stream=True,
            )
            state["response"] = response
            try:
                response.content
            finally:
                response.close()
        except requests.RequestException as exc:
            raise _failure(exc, request) from exc
        return response

    def execute(self, request: OutboundRequest) -> requests.Response:
        state: dict[str, Any] = {}

        def run() -> None:
            try:
                state["result"] = self._send(request, state)
            except Exception as exc:  # re-raised on the calling thread
                state["error"] = exc

        worker = threading.Thread(target=run, name="binance-transport", daemon=True)
        worker.start()
        worker.join(request.timeout)
        if worker.is_alive():
            pending = state.get("response")
            if pending is not None:
                pending.close()
            LOGGER.debug("%s %s exceeded %ss", request.method, request.url, request.timeout)
            raise _timed_out(request)
        if "error" in state:
            raise state["error"]
        return state["result"]

    def close(self) -> None:
        self.session.close()


__all__ = [
    "TransportClient",
    "TransportFailure",
    "TransportFailureKind",
    "classify_connection_error",
]
