"""Helpers for producing Binance-compatible HMAC-SHA256 request signatures."""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from decimal import Decimal
from hashlib import sha256
from typing import Any
from urllib.parse import quote

TIMESTAMP_FIELD = "timestamp"
SIGNATURE_FIELD = "signature"

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class SigningError(TypeError):
    """Raised when a request cannot be signed because of a programming error."""


def _plain_decimal(value: Decimal) -> str:
    if not value.is_finite():
        raise SigningError(f"Parameter values must be finite numbers, got {value}")
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def render_value(value: Any) -> str:
    """Render a scalar as text, numbers in plain positional notation.

    The upstream rejects exponent notation, so ``1e-05`` goes out as ``0.00001``.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, float):
        return _plain_decimal(Decimal(repr(value)))
    if isinstance(value, Decimal):
        return _plain_decimal(value)
    raise SigningError(f"Parameter values must be scalars, got {type(value).__name__}")


def encode_value(value: Any) -> str:
    """Render and percent-encode a scalar parameter value."""

    return quote(render_value(value), safe=_URI_COMPONENT_SAFE)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Serialize ``params`` into the canonical ``key=value&...`` form.

    Keys are ordered by code point so the same mapping always yields the same
    string regardless of insertion order.
    """

    for key in params:
        if not isinstance(key, str):
            raise SigningError(f"Parameter names must be strings, got {type(key).__name__}")
    return "&".join(f"{key}={encode_value(params[key])}" for key in sorted(params))


def sign(secret: str, canonical_string: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``canonical_string``."""

    if not secret:
        raise SigningError("Cannot sign without an API secret")
    return hmac.new(secret.encode("utf-8"), canonical_string.encode("utf-8"), sha256).hexdigest()


def sign_params(secret: str, params: Mapping[str, Any], timestamp: int) -> dict[str, Any]:
    """Return a new mapping with ``timestamp`` injected and ``signature`` appended.

    The signature covers exactly the original params plus the timestamp. The
    input mapping is left untouched, so a failed attempt leaves nothing behind.
    """

    if SIGNATURE_FIELD in params:
        raise SigningError("Parameters already carry a signature")
    stamped = {**params, TIMESTAMP_FIELD: timestamp}
    signature = sign(secret, canonicalize(stamped))
    return {**stamped, SIGNATURE_FIELD: signature}


__all__ = [
    "SIGNATURE_FIELD",
    "TIMESTAMP_FIELD",
    "SigningError",
    "canonicalize",
    "encode_value",
    "render_value",
    "sign",
    "sign_params",
]
