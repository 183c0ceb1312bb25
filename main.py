"""Command line entry-point for the Binance signing proxy."""
from __future__ import annotations

import argparse
import json
import logging
from typing import Optional

import uvicorn

from binance_proxy.config import ConfigurationError, Settings, load_settings
from binance_proxy.core import BinanceClient, Success
from binance_proxy.utils import configure_logging
from binance_proxy.web import create_app

LOGGER = logging.getLogger(__name__)


def build_client(settings: Settings) -> BinanceClient:
    return BinanceClient(
        settings.credential(),
        base_url=settings.base_url,
        timeout=settings.timeout,
        api_key_header=settings.api_key_header,
    )


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    app = create_app(settings=settings)
    LOGGER.info("Binance proxy listening on %s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def cmd_check_credentials(args: argparse.Namespace, settings: Settings) -> int:
    client = build_client(settings)
    try:
        check = client.test_credentials()
    finally:
        client.close()
    if check.valid:
        print(f"Credentials are valid (account type: {check.account_type}, permissions: {', '.join(check.permissions)})")
        return 0
    print(f"Invalid credentials: {check.error}")
    return 1


def cmd_server_time(args: argparse.Namespace, settings: Settings) -> int:
    client = build_client(settings)
    try:
        result = client.get_server_time()
    finally:
        client.close()
    if isinstance(result, Success):
        print(json.dumps(result.payload))
        return 0
    print(f"Request failed: {result.message}")
    return 1


COMMANDS = {
    "serve": cmd_serve,
    "check-credentials": cmd_check_credentials,
    "server-time": cmd_server_time,
}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Binance API signing proxy")
    parser.add_argument("--env-file", help="Optional .env file path.", default=None)
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP proxy")
    serve.add_argument("--host", default="0.0.0.0", help="Host address to bind.")
    serve.add_argument("--port", type=int, default=3000, help="Port to listen on.")

    subparsers.add_parser("check-credentials", help="Verify the configured API key pair")
    subparsers.add_parser("server-time", help="Print the Binance server time")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    settings = load_settings(args.env_file)
    try:
        return COMMANDS[args.command](args, settings)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
