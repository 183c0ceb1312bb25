from __future__ import annotations

import hashlib
import hmac
import logging
from decimal import Decimal

import pytest
import requests

from binance_proxy.config import ConfigurationError, Credential
from binance_proxy.core import (
    BinanceClient,
    CallSpec,
    Success,
    TransportError,
    TransportErrorKind,
    UpstreamError,
)

from .conftest import StubSession, make_response

BASE_URL = "https://api.binance.com"


def _client(session: StubSession, credential: Credential, clock) -> BinanceClient:
    return BinanceClient(credential, base_url=BASE_URL, session=session, clock=clock)


def test_missing_credential_fails_at_construction() -> None:
    with pytest.raises(ConfigurationError):
        BinanceClient(None)


def test_signed_account_call(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {"accountType": "SPOT", "balances": []}))
    client = _client(session, credential, fixed_clock)

    result = client.get_account()

    assert result == Success(status_code=200, payload={"accountType": "SPOT", "balances": []})
    call = session.calls[0]
    signature = hmac.new(b"S", b"timestamp=1000", hashlib.sha256).hexdigest()
    assert call["method"] == "GET"
    assert call["url"] == f"{BASE_URL}/api/v3/account?timestamp=1000&signature={signature}"
    assert call["headers"]["X-MBX-APIKEY"] == "test-key"
    assert call["json"] is None
    assert call["timeout"] == 30.0


def test_public_price_call_is_unsigned(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {"symbol": "BTCUSDT", "price": "1.0"}))
    client = _client(session, credential, fixed_clock)

    client.get_ticker_price("btcusdt")

    assert session.calls[0]["url"] == f"{BASE_URL}/api/v3/ticker/price?symbol=BTCUSDT"


def test_public_calls_without_symbol(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, []))
    client = _client(session, credential, fixed_clock)

    client.get_exchange_info()
    client.get_server_time()

    assert [call["url"] for call in session.calls] == [
        f"{BASE_URL}/api/v3/exchangeInfo",
        f"{BASE_URL}/api/v3/time",
    ]


def test_withdraw_posts_signed_body(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {"id": "7213fea8e94b4a5593d507237e5a555b"}))
    client = _client(session, credential, fixed_clock)

    result = client.withdraw("usdt", "TXYZ1234567890", "25", network="trx", address_tag="memo")

    assert isinstance(result, Success)
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{BASE_URL}/sapi/v1/capital/withdraw/apply"
    body = call["json"]
    assert body["coin"] == "USDT"
    assert body["network"] == "TRX"
    assert body["addressTag"] == "memo"
    assert body["amount"] == "25"
    assert body["timestamp"] == 1000
    assert "signature" in body
    assert "name" not in body


def test_small_withdrawal_amount_is_sent_positionally(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {"id": "abc"}))
    client = _client(session, credential, fixed_clock)

    client.withdraw("BTC", "bc1qexampleaddress", Decimal("0.00001"))
    client.withdraw("BTC", "bc1qexampleaddress", 1e-7)

    first, second = (call["json"] for call in session.calls)
    assert first["amount"] == "0.00001"
    expected = "address=bc1qexampleaddress&amount=0.00001&coin=BTC&timestamp=1000"
    assert first["signature"] == hmac.new(b"S", expected.encode(), hashlib.sha256).hexdigest()
    assert second["amount"] == "0.0000001"


def test_withdraw_without_id_is_still_success(credential: Credential, fixed_clock, caplog) -> None:
    session = StubSession(make_response(200, {}))
    client = _client(session, credential, fixed_clock)

    with caplog.at_level(logging.WARNING):
        result = client.withdraw("BTC", "bc1qexampleaddress", 0.1)

    assert result == Success(status_code=200, payload={})
    assert "without an id" in caplog.text


def test_history_filters_drop_unset_values(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, []))
    client = _client(session, credential, fixed_clock)

    client.get_withdraw_history(coin="btc", status=None, offset=0, limit=10, withdrawOrderId="")
    client.get_deposit_history()

    first, second = (call["url"] for call in session.calls)
    assert first.startswith(f"{BASE_URL}/sapi/v1/capital/withdraw/history?coin=BTC&limit=10&offset=0&timestamp=1000&signature=")
    assert second.startswith(f"{BASE_URL}/sapi/v1/capital/deposit/hisrec?timestamp=1000&signature=")


def test_unknown_history_filter_is_rejected(credential: Credential, fixed_clock) -> None:
    client = _client(StubSession(), credential, fixed_clock)
    with pytest.raises(TypeError):
        client.get_deposit_history(withdrawOrderId="abc")


def test_deposit_address_and_coin_config(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {"address": "x"}))
    client = _client(session, credential, fixed_clock)

    client.get_deposit_address("eth", network="arbitrum")
    client.get_all_coins()

    assert "/sapi/v1/capital/deposit/address?coin=ETH&network=ARBITRUM&timestamp=1000&signature=" in session.calls[0]["url"]
    assert session.calls[1]["url"].startswith(f"{BASE_URL}/sapi/v1/capital/config/getall?timestamp=1000&signature=")


def test_upstream_rejection_is_returned(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(400, {"code": -1021, "msg": "Timestamp outside recvWindow"}))
    client = _client(session, credential, fixed_clock)

    result = client.call(CallSpec("GET", "/api/v3/account"))

    assert result == UpstreamError(status_code=400, code=-1021, message="Timestamp outside recvWindow")


def test_transport_failure_is_returned(credential: Credential, fixed_clock) -> None:
    session = StubSession(requests.ConnectionError(ConnectionRefusedError(111, "Connection refused")))
    client = _client(session, credential, fixed_clock)

    result = client.get_account()

    assert isinstance(result, TransportError)
    assert result.kind is TransportErrorKind.UNREACHABLE
    assert result.status_code == 503


def test_secrets_never_reach_the_log(credential: Credential, fixed_clock, caplog) -> None:
    session = StubSession(make_response(401, {"code": -2015, "msg": "Invalid API-key"}))
    client = _client(session, credential, fixed_clock)

    with caplog.at_level(logging.DEBUG):
        client.get_account()

    assert "test-key" not in caplog.text
    assert "signature=" not in caplog.text


def test_credentials_check(credential: Credential, fixed_clock) -> None:
    ok = _client(
        StubSession(make_response(200, {"accountType": "SPOT", "permissions": ["SPOT"]})),
        credential,
        fixed_clock,
    ).test_credentials()
    assert ok.valid
    assert ok.account_type == "SPOT"
    assert ok.permissions == ["SPOT"]

    bad = _client(
        StubSession(make_response(401, {"code": -2015, "msg": "Invalid API-key, IP, or permissions for action."})),
        credential,
        fixed_clock,
    ).test_credentials()
    assert not bad.valid
    assert bad.error.startswith("Invalid API-key")


def test_close_releases_session(credential: Credential, fixed_clock) -> None:
    session = StubSession()
    _client(session, credential, fixed_clock).close()
    assert session.closed


def test_api_key_header_override_reaches_the_wire(credential: Credential, fixed_clock) -> None:
    session = StubSession(make_response(200, {}))
    client = BinanceClient(
        credential,
        base_url=BASE_URL,
        session=session,
        clock=fixed_clock,
        api_key_header="X-API-KEY",
    )

    client.get_account()

    headers = session.calls[0]["headers"]
    assert headers["X-API-KEY"] == "test-key"
    assert "X-MBX-APIKEY" not in headers
