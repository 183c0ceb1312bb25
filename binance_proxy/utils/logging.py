"""Logging setup shared by the CLI and the web server."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # urllib3 logs full URLs, including signed query strings, at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.INFO)
