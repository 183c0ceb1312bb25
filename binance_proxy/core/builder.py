"""Turn logical call descriptions into fully resolved outbound requests."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from binance_proxy.config import Credential

from .auth import SIGNATURE_FIELD, SigningError, canonicalize, encode_value, render_value, sign_params

# Header name Binance checks for the API key; the value must match exactly.
# Other upstreams (e.g. one expecting "X-API-KEY") override it per builder.
API_KEY_HEADER = "X-MBX-APIKEY"
USER_AGENT = "binance-proxy/1.0.0"
DEFAULT_TIMEOUT = 30.0

QUERY_METHODS = frozenset({"GET", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT"})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CallSpec:
    """One upstream operation before it is turned into a wire request."""

    method: str
    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    requires_signature: bool = True

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in QUERY_METHODS | BODY_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        if not self.path.startswith("/"):
            raise ValueError(f"Upstream path must start with '/': {self.path!r}")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    query: str | None = None
    body: Mapping[str, Any] | None = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def full_url(self) -> str:
        return f"{self.url}?{self.query}" if self.query else self.url


def encode_query(params: Mapping[str, Any]) -> str:
    """Encode params for the URL, keeping any signature as the last pair."""

    unsigned = {key: value for key, value in params.items() if key != SIGNATURE_FIELD}
    query = canonicalize(unsigned)
    if SIGNATURE_FIELD in params:
        tail = f"{SIGNATURE_FIELD}={encode_value(params[SIGNATURE_FIELD])}"
        query = f"{query}&{tail}" if query else tail
    return query


def json_body(params: Mapping[str, Any]) -> dict[str, Any]:
    """Body form of params; fractional numbers carry the exact text that was signed."""

    return {
        key: render_value(value) if isinstance(value, (float, Decimal)) else value
        for key, value in params.items()
    }


class RequestBuilder:
    """Builds ``OutboundRequest`` values; performs no I/O."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        clock: Callable[[], int] = now_ms,
        api_key_header: str = API_KEY_HEADER,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.clock = clock
        self.api_key_header = api_key_header

    def headers(self, credential: Credential | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if credential is not None:
            headers[self.api_key_header] = credential.key
        return headers

    def build(self, call_spec: CallSpec, credential: Credential | None) -> OutboundRequest:
        params: Mapping[str, Any] = call_spec.params
        if call_spec.requires_signature:
            if credential is None:
                raise SigningError(f"{call_spec.method} {call_spec.path} requires a credential to sign")
            params = sign_params(credential.secret, params, self.clock())
        else:
            # Validate scalars up front so unsigned calls fail the same way.
            canonicalize(params)

        query = None
        body = None
        if call_spec.method in QUERY_METHODS:
            query = encode_query(params) or None
        else:
            body = MappingProxyType(json_body(params))

        return OutboundRequest(
            method=call_spec.method,
            url=f"{self.base_url}{call_spec.path}",
            headers=MappingProxyType(self.headers(credential)),
            query=query,
            body=body,
            timeout=self.timeout,
        )


__all__ = [
    "API_KEY_HEADER",
    "CallSpec",
    "OutboundRequest",
    "RequestBuilder",
    "encode_query",
    "json_body",
    "now_ms",
]
