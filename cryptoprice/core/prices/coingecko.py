"""CoinGecko provider — resolves tickers to CoinGecko ids and fetches USD prices in batch."""
import asyncio
import json
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

import aiohttp
import structlog

from cryptoprice.core.config import settings
from cryptoprice.core.http import AiohttpFetcher, Fetch, HttpResponse
from cryptoprice.core.prices.base import BatchPriceProvider
from cryptoprice.core.prices.errors import ProviderUnavailable, UnknownSymbol
from cryptoprice.core.prices.models import normalize_symbol

logger = structlog.get_logger()

COINS_LIST_ENDPOINT = "/coins/list"
SIMPLE_PRICE_ENDPOINT = "/simple/price"
VS_CURRENCY = "usd"


class CoinGeckoProvider(BatchPriceProvider):

    def __init__(self, base_url: str | None = None, fetch: Fetch | None = None):
        self._base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self._fetch = fetch or AiohttpFetcher(
            timeout_seconds=settings.request_timeout_seconds,
            requests_per_minute=settings.requests_per_minute,
        )
        # normalized symbol -> CoinGecko id; last listing entry wins on collision
        self._symbol_to_id: dict[str, str] = {}

    @property
    def symbol_count(self) -> int:
        return len(self._symbol_to_id)

    def identifier_for(self, symbol: str) -> str | None:
        return self._symbol_to_id.get(normalize_symbol(symbol))

    async def initialize(self) -> None:
        resp = await self._get(f"{self._base_url}{COINS_LIST_ENDPOINT}", {})
        payload = _decode(resp)
        if not isinstance(payload, list):
            raise ProviderUnavailable("Coin listing is not a JSON array", url=resp.url)

        # Parse everything before touching the index so a bad listing leaves no partial state
        mapping: dict[str, str] = {}
        for item in payload:
            if not isinstance(item, dict):
                raise ProviderUnavailable(f"Malformed coin listing entry: {item!r}", url=resp.url)
            coin_id, symbol = item.get("id"), item.get("symbol")
            if not isinstance(coin_id, str) or not isinstance(symbol, str):
                raise ProviderUnavailable(f"Coin listing entry lacks id/symbol: {item!r}", url=resp.url)
            key = normalize_symbol(symbol)
            if key:
                mapping[key] = coin_id

        self._symbol_to_id.update(mapping)
        logger.info("provider.symbols_loaded", provider="coingecko", count=len(self._symbol_to_id))

    async def get_price_by_symbol(self, symbol: str) -> Decimal:
        prices = await self.get_prices_by_symbols([symbol])
        return prices[normalize_symbol(symbol)]

    async def get_prices_by_symbols(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        # Resolve every symbol up front: an unknown one fails before any network I/O
        ids: dict[str, str] = {}
        for symbol in symbols:
            key = normalize_symbol(symbol)
            coin_id = self._symbol_to_id.get(key)
            if coin_id is None:
                raise UnknownSymbol(symbol)
            ids[key] = coin_id
        if not ids:
            return {}

        params = {
            "ids": ",".join(dict.fromkeys(ids.values())),
            "vs_currencies": VS_CURRENCY,
        }
        resp = await self._get(f"{self._base_url}{SIMPLE_PRICE_ENDPOINT}", params)
        payload = _decode(resp)
        if not isinstance(payload, dict):
            raise ProviderUnavailable("Price response is not a JSON object", url=resp.url)

        prices: dict[str, Decimal] = {}
        for key, coin_id in ids.items():
            quote = payload.get(coin_id)
            if not isinstance(quote, dict) or VS_CURRENCY not in quote:
                raise ProviderUnavailable(f"No {VS_CURRENCY} quote for {coin_id!r}", symbol=key, url=resp.url)
            prices[key] = _to_price(quote[VS_CURRENCY], key, resp.url)

        logger.info("provider.prices_fetched", provider="coingecko", symbols=list(prices))
        return prices

    async def _get(self, url: str, params: Mapping[str, str]) -> HttpResponse:
        try:
            resp = await self._fetch(url, params)
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.warning("provider.request_failed", url=url, error=repr(e))
            raise ProviderUnavailable(f"Request to {url} failed: {e!r}", url=url) from e
        if resp.status != 200:
            # TODO: HTTP 429 deserves its own error once callers can act on Retry-After
            logger.warning("provider.bad_status", url=resp.url, status=resp.status)
            raise ProviderUnavailable(
                f"{url} returned HTTP {resp.status}: {resp.body[:200]}",
                status=resp.status,
                url=resp.url,
            )
        return resp


def _decode(resp: HttpResponse) -> Any:
    try:
        return json.loads(resp.body, parse_float=Decimal)
    except ValueError as e:
        raise ProviderUnavailable(f"Invalid JSON from {resp.url}: {e}", url=resp.url) from e


def _to_price(value: Any, symbol: str, url: str) -> Decimal:
    """JSON number (already Decimal/int) or numeric string -> non-negative finite Decimal."""
    if isinstance(value, bool) or not isinstance(value, (int, Decimal, str)):
        raise ProviderUnavailable(f"Non-numeric price {value!r}", symbol=symbol, url=url)
    # Decimal() alone would accept "5_000" and " 5 "
    if isinstance(value, str) and ("_" in value or value != value.strip()):
        raise ProviderUnavailable(f"Non-numeric price {value!r}", symbol=symbol, url=url)
    try:
        price = Decimal(value)
    except InvalidOperation as e:
        raise ProviderUnavailable(f"Non-numeric price {value!r}", symbol=symbol, url=url) from e
    if not price.is_finite() or price < 0:
        raise ProviderUnavailable(f"Invalid price {value!r}", symbol=symbol, url=url)
    return price
