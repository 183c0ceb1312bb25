"""HTTP surface for the Binance signing proxy."""

from .app import create_app, render_result

__all__ = ["create_app", "render_result"]
