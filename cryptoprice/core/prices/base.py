"""Abstract PriceProvider — every USD price source (and every cache) implements this."""
from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal


class PriceProvider(ABC):

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the provider for lookups. Must run before get_price_by_symbol.
        Not guaranteed idempotent: a second call may re-fetch and overwrite state.
        Raises ProviderUnavailable.
        """
        ...

    @abstractmethod
    async def get_price_by_symbol(self, symbol: str) -> Decimal:
        """
        Latest known USD price for a ticker (case-insensitive).
        Raises UnknownSymbol (before any network call) or ProviderUnavailable.
        """
        ...


class BatchPriceProvider(PriceProvider):

    @abstractmethod
    async def get_prices_by_symbols(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """
        USD prices for several tickers in one round trip, keyed by normalized symbol.
        All or nothing: one unknown symbol fails the whole call before any network I/O.
        """
        ...
