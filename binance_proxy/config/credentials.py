"""API credential container shared by everything that signs requests."""

from __future__ import annotations

from dataclasses import dataclass, field


class ConfigurationError(RuntimeError):
    """Raised when the proxy is started without the configuration it needs."""


@dataclass(frozen=True)
class Credential:
    """Binance API key pair.

    Built once at startup and handed to the client by reference. Neither value
    shows up in ``repr`` so the pair cannot leak through log lines.
    """

    key: str = field(repr=False)
    secret: str = field(repr=False)

    def __post_init__(self) -> None:
        missing = [name for name, value in (("key", self.key), ("secret", self.secret)) if not value]
        if missing:
            raise ConfigurationError(f"Credential is missing: {', '.join(missing)}")


__all__ = ["ConfigurationError", "Credential"]
