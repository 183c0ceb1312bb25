"""FastAPI application exposing the signing proxy over HTTP."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from binance_proxy import __version__
from binance_proxy.config import Settings, load_settings
from binance_proxy.core import BinanceClient, CallResult, Success, TransportError, TransportErrorKind, UpstreamError

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "Binance Signing Proxy"

ENDPOINTS = {
    "account": "/binance/api/v3/account",
    "withdraw": "/binance/sapi/v1/capital/withdraw/apply",
    "withdrawHistory": "/binance/sapi/v1/capital/withdraw/history",
    "depositHistory": "/binance/sapi/v1/capital/deposit/hisrec",
    "depositAddress": "/binance/sapi/v1/capital/deposit/address",
    "coins": "/binance/sapi/v1/capital/config/getall",
    "prices": "/binance/api/v3/ticker/price",
    "exchangeInfo": "/binance/api/v3/exchangeInfo",
    "serverTime": "/binance/api/v3/time",
    "testCredentials": "/binance/test-credentials",
}

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /status",
    "GET /binance/api/v3/account",
    "POST /binance/sapi/v1/capital/withdraw/apply",
    "GET /binance/sapi/v1/capital/withdraw/history",
    "GET /binance/sapi/v1/capital/deposit/hisrec",
    "GET /binance/sapi/v1/capital/deposit/address",
    "GET /binance/sapi/v1/capital/config/getall",
    "GET /binance/api/v3/ticker/price",
    "GET /binance/api/v3/exchangeInfo",
    "GET /binance/api/v3/time",
    "POST /binance/test-credentials",
]


class WithdrawRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    coin: str = Field(..., min_length=2, max_length=10)
    address: str = Field(..., min_length=10)
    amount: Decimal = Field(..., gt=0)
    network: str | None = None
    addressTag: str | None = None
    name: str | None = None


def _now() -> str:
    return datetime.now(UTC).isoformat()


def render_result(result: CallResult, production: bool = False) -> JSONResponse:
    """Render a ``CallResult`` as the proxy's JSON envelope."""

    if isinstance(result, Success):
        return JSONResponse(
            {"success": True, "data": result.payload, "timestamp": _now()},
            status_code=200,
        )
    if isinstance(result, UpstreamError):
        return JSONResponse(
            {
                "error": "Binance API Error",
                "message": result.message,
                "code": result.code,
                "timestamp": _now(),
            },
            status_code=result.status_code,
        )
    if isinstance(result, TransportError) and result.kind is TransportErrorKind.UNREACHABLE:
        return JSONResponse(
            {
                "error": "Service Unavailable",
                "message": "Unable to connect to Binance API",
                "code": "CONNECTION_ERROR",
                "timestamp": _now(),
            },
            status_code=result.status_code,
        )
    if isinstance(result, TransportError) and result.kind is TransportErrorKind.TIMEOUT:
        return JSONResponse(
            {
                "error": "Gateway Timeout",
                "message": "Binance API did not respond in time",
                "code": "TIMEOUT",
                "timestamp": _now(),
            },
            status_code=result.status_code,
        )
    return JSONResponse(
        {
            "error": "Internal Server Error",
            "message": "Something went wrong" if production else result.message,
            "timestamp": _now(),
        },
        status_code=getattr(result, "status_code", 500),
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every inbound request."""

    async def dispatch(self, request: Request, call_next):
        client_host = request.client.host if request.client else "-"
        LOGGER.info("%s %s - IP: %s", request.method, request.url.path, client_host)
        return await call_next(request)


def _build_router(client: BinanceClient, production: bool) -> APIRouter:
    router = APIRouter(prefix="/binance")

    def respond(result: CallResult) -> JSONResponse:
        return render_result(result, production=production)

    @router.get("/api/v3/account")
    def account() -> JSONResponse:
        return respond(client.get_account())

    @router.get("/api/v3/ticker/price")
    def ticker_price(symbol: str | None = Query(None)) -> JSONResponse:
        return respond(client.get_ticker_price((symbol or "").strip() or None))

    @router.get("/api/v3/exchangeInfo")
    def exchange_info(symbol: str | None = Query(None)) -> JSONResponse:
        return respond(client.get_exchange_info((symbol or "").strip() or None))

    @router.get("/api/v3/time")
    def server_time() -> JSONResponse:
        return respond(client.get_server_time())

    @router.post("/sapi/v1/capital/withdraw/apply")
    def withdraw(body: WithdrawRequest) -> JSONResponse:
        return respond(
            client.withdraw(
                coin=body.coin,
                address=body.address,
                amount=body.amount,
                network=body.network,
                address_tag=body.addressTag,
                name=body.name,
            )
        )

    @router.get("/sapi/v1/capital/withdraw/history")
    def withdraw_history(
        coin: str | None = Query(None),
        withdrawOrderId: str | None = Query(None),
        status: int | None = Query(None, ge=0, le=6),
        startTime: int | None = Query(None),
        endTime: int | None = Query(None),
        offset: int | None = Query(None, ge=0),
        limit: int | None = Query(None, ge=1, le=1000),
    ) -> JSONResponse:
        return respond(
            client.get_withdraw_history(
                coin=coin,
                withdrawOrderId=withdrawOrderId,
                status=status,
                startTime=startTime,
                endTime=endTime,
                offset=offset,
                limit=limit,
            )
        )

    @router.get("/sapi/v1/capital/deposit/hisrec")
    def deposit_history(
        coin: str | None = Query(None),
        status: int | None = Query(None, ge=0, le=6),
        startTime: int | None = Query(None),
        endTime: int | None = Query(None),
        offset: int | None = Query(None, ge=0),
        limit: int | None = Query(None, ge=1, le=1000),
    ) -> JSONResponse:
        return respond(
            client.get_deposit_history(
                coin=coin,
                status=status,
                startTime=startTime,
                endTime=endTime,
                offset=offset,
                limit=limit,
            )
        )

    @router.get("/sapi/v1/capital/deposit/address")
    def deposit_address(
        coin: str = Query(..., min_length=2, max_length=10),
        network: str | None = Query(None),
    ) -> JSONResponse:
        return respond(client.get_deposit_address(coin.strip(), network))

    @router.get("/sapi/v1/capital/config/getall")
    def all_coins() -> JSONResponse:
        return respond(client.get_all_coins())

    @router.post("/test-credentials")
    def test_credentials() -> JSONResponse:
        LOGGER.info("Testing Binance API credentials...")
        check = client.test_credentials()
        if check.valid:
            return JSONResponse(
                {
                    "success": True,
                    "message": "Credentials are valid",
                    "data": {"accountType": check.account_type, "permissions": check.permissions},
                    "timestamp": _now(),
                }
            )
        return JSONResponse(
            {
                "success": False,
                "message": "Invalid credentials",
                "error": check.error,
                "timestamp": _now(),
            },
            status_code=401,
        )

    return router


def create_app(settings: Settings | None = None, client: BinanceClient | None = None) -> FastAPI:
    settings = settings or load_settings()
    if client is None:
        client = BinanceClient(
            settings.credential(),
            base_url=settings.base_url,
            timeout=settings.timeout,
            api_key_header=settings.api_key_header,
        )

    app = FastAPI(title=SERVICE_NAME, version=__version__)
    app.state.client = client
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            {
                "error": "Validation Error",
                "details": jsonable_encoder(exc.errors()),
                "timestamp": _now(),
            },
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                {
                    "error": "Not Found",
                    "message": f"Endpoint {request.method} {request.url.path} not found",
                    "availableEndpoints": AVAILABLE_ENDPOINTS,
                    "timestamp": _now(),
                },
                status_code=404,
            )
        return JSONResponse({"error": exc.detail, "timestamp": _now()}, status_code=exc.status_code)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": _now(),
            "service": SERVICE_NAME,
            "version": __version__,
        }

    @app.get("/status")
    async def status() -> dict[str, Any]:
        return {"status": "active", "endpoints": ENDPOINTS, "timestamp": _now()}

    app.include_router(_build_router(client, settings.is_production))
    LOGGER.info("%s configured for %s", SERVICE_NAME, settings.base_url)
    return app
