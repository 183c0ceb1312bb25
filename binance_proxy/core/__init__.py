"""Core exchange integration modules."""

from .auth import SigningError, canonicalize, sign, sign_params
from .builder import CallSpec, OutboundRequest, RequestBuilder
from .client import BinanceClient, CredentialCheck
from .results import CallResult, Success, TransportError, TransportErrorKind, UpstreamError, normalize
from .transport import TransportClient, TransportFailure, TransportFailureKind

__all__ = [
    "BinanceClient",
    "CallResult",
    "CallSpec",
    "CredentialCheck",
    "OutboundRequest",
    "RequestBuilder",
    "SigningError",
    "Success",
    "TransportClient",
    "TransportError",
    "TransportErrorKind",
    "TransportFailure",
    "TransportFailureKind",
    "UpstreamError",
    "canonicalize",
    "normalize",
    "sign",
    "sign_params",
]
