"""REST client wrapper for the Binance API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import requests

from binance_proxy.config import ConfigurationError, Credential

from .builder import API_KEY_HEADER, DEFAULT_TIMEOUT, CallSpec, RequestBuilder
from .results import CallResult, Success, normalize
from .transport import TransportClient, TransportFailure

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.binance.com"

HISTORY_FILTERS = ("coin", "status", "startTime", "endTime", "offset", "limit")
WITHDRAW_HISTORY_FILTERS = ("coin", "withdrawOrderId", *HISTORY_FILTERS[1:])


@dataclass(frozen=True)
class CredentialCheck:
    valid: bool
    account_type: str | None = None
    permissions: list[str] = field(default_factory=list)
    error: str | None = None


def _filters(allowed: tuple[str, ...], values: dict[str, Any]) -> dict[str, Any]:
    unknown = set(values) - set(allowed)
    if unknown:
        raise TypeError(f"Unsupported filters: {', '.join(sorted(unknown))}")
    params = {key: values[key] for key in allowed if values.get(key) not in (None, "")}
    if "coin" in params:
        params["coin"] = params["coin"].upper()
    return params


class BinanceClient:
    """Signs, forwards and normalizes calls to the Binance REST API."""

    def __init__(
        self,
        credential: Credential | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        clock: Callable[[], int] | None = None,
        api_key_header: str = API_KEY_HEADER,
    ) -> None:
        if credential is None:
            raise ConfigurationError("Binance API credentials not found in environment variables")
        self.credential = credential
        builder_kwargs: dict[str, Any] = {"timeout": timeout, "api_key_header": api_key_header}
        if clock is not None:
            builder_kwargs["clock"] = clock
        self.builder = RequestBuilder(base_url, **builder_kwargs)
        self.transport = TransportClient(session)

    def call(self, call_spec: CallSpec) -> CallResult:
        request = self.builder.build(call_spec, self.credential)
        LOGGER.info("Making %s request to: %s", call_spec.method, call_spec.path)
        try:
            outcome: requests.Response | TransportFailure = self.transport.execute(request)
        except TransportFailure as exc:
            outcome = exc
        result = normalize(outcome)
        if not result.ok:
            LOGGER.error(
                "Binance API error on %s %s: %s",
                call_spec.method,
                call_spec.path,
                result,
            )
        return result

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        signed: bool = True,
    ) -> CallResult:
        return self.call(CallSpec(method, path, params or {}, requires_signature=signed))

    def get_account(self) -> CallResult:
        return self._request("GET", "/api/v3/account")

    def get_server_time(self) -> CallResult:
        return self._request("GET", "/api/v3/time", signed=False)

    def get_ticker_price(self, symbol: str | None = None) -> CallResult:
        params = {"symbol": symbol.upper()} if symbol else {}
        return self._request("GET", "/api/v3/ticker/price", params, signed=False)

    def get_exchange_info(self, symbol: str | None = None) -> CallResult:
        params = {"symbol": symbol.upper()} if symbol else {}
        return self._request("GET", "/api/v3/exchangeInfo", params, signed=False)

    def withdraw(
        self,
        coin: str,
        address: str,
        amount: Decimal | float | str,
        network: str | None = None,
        address_tag: str | None = None,
        name: str | None = None,
    ) -> CallResult:
        """Submit a withdrawal.

        A 2xx answer without an ``id`` is still a ``Success``; the missing id is
        logged so callers can reconcile it.
        """
        params: dict[str, Any] = {
            "coin": coin.upper(),
            "address": address,
            "amount": Decimal(amount) if isinstance(amount, str) else amount,
        }
        if network:
            params["network"] = network.upper()
        if address_tag:
            params["addressTag"] = address_tag
        if name:
            params["name"] = name

        LOGGER.info("Processing withdrawal: %s %s to %s...", amount, params["coin"], address[:10])
        result = self._request("POST", "/sapi/v1/capital/withdraw/apply", params)
        if isinstance(result, Success):
            withdrawal_id = result.payload.get("id") if isinstance(result.payload, dict) else None
            if withdrawal_id is None:
                LOGGER.warning("Withdrawal accepted without an id in the response")
            else:
                LOGGER.info("Withdrawal submitted successfully: ID %s", withdrawal_id)
        return result

    def get_withdraw_history(self, **filters: Any) -> CallResult:
        params = _filters(WITHDRAW_HISTORY_FILTERS, filters)
        return self._request("GET", "/sapi/v1/capital/withdraw/history", params)

    def get_deposit_history(self, **filters: Any) -> CallResult:
        params = _filters(HISTORY_FILTERS, filters)
        return self._request("GET", "/sapi/v1/capital/deposit/hisrec", params)

    def get_deposit_address(self, coin: str, network: str | None = None) -> CallResult:
        params = {"coin": coin.upper()}
        if network:
            params["network"] = network.upper()
        return self._request("GET", "/sapi/v1/capital/deposit/address", params)

    def get_all_coins(self) -> CallResult:
        return self._request("GET", "/sapi/v1/capital/config/getall")

    def test_credentials(self) -> CredentialCheck:
        result = self.get_account()
        if isinstance(result, Success):
            payload = result.payload if isinstance(result.payload, dict) else {}
            return CredentialCheck(
                valid=True,
                account_type=payload.get("accountType"),
                permissions=list(payload.get("permissions") or []),
            )
        return CredentialCheck(valid=False, error=result.message or "Invalid credentials")

    def close(self) -> None:
        self.transport.close()


__all__ = ["BinanceClient", "CredentialCheck", "DEFAULT_BASE_URL"]
