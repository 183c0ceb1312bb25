"""Classify transport outcomes into the closed set of call results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

import requests

from .transport import TransportFailure, TransportFailureKind

LOGGER = logging.getLogger(__name__)

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"


class TransportErrorKind(str, Enum):
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    UNKNOWN = "unknown"


DEFAULT_TRANSPORT_STATUS = {
    TransportErrorKind.TIMEOUT: 504,
    TransportErrorKind.UNREACHABLE: 503,
    TransportErrorKind.UNKNOWN: 500,
}

_UNREACHABLE_FAILURES = {
    TransportFailureKind.CONNECTION_REFUSED,
    TransportFailureKind.DNS_FAILURE,
    TransportFailureKind.CONNECTION_ERROR,
}


@dataclass(frozen=True)
class Success:
    status_code: int
    payload: Any

    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class UpstreamError:
    """The upstream answered and rejected the request."""

    status_code: int
    code: int | str
    message: str

    ok: ClassVar[bool] = False


@dataclass(frozen=True)
class TransportError:
    """No interpretable upstream response was produced."""

    kind: TransportErrorKind
    message: str
    status_code: int = 500

    ok: ClassVar[bool] = False

    @classmethod
    def of(cls, kind: TransportErrorKind, message: str, status_code: int | None = None) -> "TransportError":
        return cls(
            kind=kind,
            message=message,
            status_code=status_code or DEFAULT_TRANSPORT_STATUS[kind],
        )


CallResult = Union[Success, UpstreamError, TransportError]


def _parse_body(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _from_response(response: requests.Response) -> CallResult:
    body = _parse_body(response)
    if 200 <= response.status_code < 300:
        return Success(status_code=response.status_code, payload=body)

    if isinstance(body, dict) and ("code" in body or "msg" in body):
        code = body.get("code")
        message = body.get("msg")
        return UpstreamError(
            status_code=response.status_code,
            code=code if code is not None else UNKNOWN_ERROR_CODE,
            message=str(message) if message else (response.text or response.reason or ""),
        )

    # A 1xx or 3xx left over after redirects carries no error status to pass on, so it maps to 500.
    description = response.text or response.reason or f"HTTP {response.status_code}"
    return TransportError.of(
        TransportErrorKind.UNKNOWN,
        f"Unrecognized upstream response ({response.status_code}): {description}",
        status_code=response.status_code if response.status_code >= 400 else None,
    )


def _from_exception(exc: BaseException) -> CallResult:
    if isinstance(exc, TransportFailure):
        if exc.kind is TransportFailureKind.TIMEOUT:
            return TransportError.of(TransportErrorKind.TIMEOUT, exc.message)
        if exc.kind in _UNREACHABLE_FAILURES:
            return TransportError.of(TransportErrorKind.UNREACHABLE, exc.message)
        return TransportError.of(TransportErrorKind.UNKNOWN, exc.message)
    return TransportError.of(TransportErrorKind.UNKNOWN, str(exc) or type(exc).__name__)


def normalize(outcome: requests.Response | BaseException | None) -> CallResult:
    """Map any transport outcome onto a ``CallResult``; never raises."""

    if isinstance(outcome, requests.Response):
        return _from_response(outcome)
    if isinstance(outcome, BaseException):
        return _from_exception(outcome)
    LOGGER.warning("Normalizing an empty transport outcome")
    return TransportError.of(TransportErrorKind.UNKNOWN, "No response received from upstream")


__all__ = [
    "CallResult",
    "Success",
    "TransportError",
    "TransportErrorKind",
    "UNKNOWN_ERROR_CODE",
    "UpstreamError",
    "normalize",
]
