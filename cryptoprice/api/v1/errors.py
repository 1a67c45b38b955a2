"""Global error handlers."""
from fastapi import Request
from fastapi.responses import JSONResponse

from cryptoprice.core.prices.errors import ProviderUnavailable, UnknownSymbol


async def unknown_symbol_handler(request: Request, exc: UnknownSymbol):
    return JSONResponse(
        status_code=404,
        content={"error": str(exc), "code": "UNKNOWN_SYMBOL", "details": {"symbol": exc.symbol}},
    )


async def provider_unavailable_handler(request: Request, exc: ProviderUnavailable):
    return JSONResponse(
        status_code=503,
        content={
            "error": str(exc),
            "code": "PROVIDER_UNAVAILABLE",
            "details": {"symbol": exc.symbol, "upstream_status": exc.status},
        },
    )


async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=422,
        content={"error": str(exc), "code": "VALIDATION_ERROR", "details": {}},
    )
