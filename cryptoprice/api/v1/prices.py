"""Price endpoints — USD quotes by ticker symbol (cache-first)."""
from fastapi import APIRouter, Depends, Query

from cryptoprice.core.prices import BatchPriceProvider, get_provider, normalize_symbol

router = APIRouter(tags=["Prices"])


@router.get("/prices/{symbol}")
async def get_price(symbol: str, provider: BatchPriceProvider = Depends(get_provider)):
    """Latest USD price for one symbol."""
    price = await provider.get_price_by_symbol(symbol)
    return {"symbol": normalize_symbol(symbol), "price": str(price), "currency": "usd"}


@router.get("/prices")
async def get_prices(
    symbols: str = Query(..., description="Comma-separated tickers, e.g. btc,eth"),
    provider: BatchPriceProvider = Depends(get_provider),
):
    """Latest USD prices for several symbols in one upstream round trip."""
    requested = [s for s in symbols.split(",") if s.strip()]
    if not requested:
        raise ValueError("symbols must name at least one ticker")
    prices = await provider.get_prices_by_symbols(requested)
    return {"currency": "usd", "prices": {sym: str(p) for sym, p in prices.items()}}
