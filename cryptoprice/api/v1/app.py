"""FastAPI application — cryptoprice v1."""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from cryptoprice import __version__
from cryptoprice.api.v1 import prices
from cryptoprice.api.v1.errors import (
    provider_unavailable_handler,
    unknown_symbol_handler,
    value_error_handler,
)
from cryptoprice.core.config import settings
from cryptoprice.core.logging_config import configure_logging
from cryptoprice.core.prices import ProviderUnavailable, UnknownSymbol, get_provider

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info("startup", version=__version__, upstream=settings.coingecko_base_url)
    await get_provider().initialize()
    yield
    logger.info("shutdown")


app = FastAPI(
    title="cryptoprice API",
    version=__version__,
    description="Current USD prices for crypto tokens by ticker symbol",
    lifespan=lifespan,
)

app.include_router(prices.router, prefix="/api/v1")

app.add_exception_handler(UnknownSymbol, unknown_symbol_handler)
app.add_exception_handler(ProviderUnavailable, provider_unavailable_handler)
app.add_exception_handler(ValueError, value_error_handler)


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
