"""Configuration utilities for the Binance proxy."""

from .credentials import ConfigurationError, Credential
from .settings import Settings, load_settings

__all__ = ["ConfigurationError", "Credential", "Settings", "load_settings"]
