"""Price layer — cache-first USD price lookups.

Design: ALL lookups go through get_provider(), which returns a TTLCache
wrapping the CoinGecko provider. A stored price is served while it is at
most cache_ttl_ms old; only a miss (or a stale entry) reaches the remote API.
This means:
  • Repeated lookups of a hot symbol cost one remote call per TTL window.
  • Concurrent lookups of the same symbol share a single remote call.
  • Swapping the upstream source is a one-line change.
"""

from cryptoprice.core.config import settings
from cryptoprice.core.prices.base import BatchPriceProvider, PriceProvider
from cryptoprice.core.prices.cached import TTLCache
from cryptoprice.core.prices.coingecko import CoinGeckoProvider
from cryptoprice.core.prices.errors import PriceLookupError, ProviderUnavailable, UnknownSymbol
from cryptoprice.core.prices.models import PriceRecord, normalize_symbol

# Singleton instances — shared across the process
_coingecko = CoinGeckoProvider(settings.coingecko_base_url)
_default_provider = TTLCache(
    _coingecko,
    ttl_ms=settings.cache_ttl_ms,
    max_entries=settings.cache_max_entries,
)


def get_provider() -> BatchPriceProvider:
    """Return the default cache-first price provider."""
    return _default_provider


__all__ = [
    "BatchPriceProvider",
    "CoinGeckoProvider",
    "PriceLookupError",
    "PriceProvider",
    "PriceRecord",
    "ProviderUnavailable",
    "TTLCache",
    "UnknownSymbol",
    "get_provider",
    "normalize_symbol",
]
