"""Signing proxy for the Binance REST API."""

__version__ = "1.0.0"
