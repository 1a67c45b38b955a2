from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


def normalize_symbol(symbol: str) -> str:
    """Index/cache key for a ticker: "  BTC " -> "btc"."""
    return symbol.strip().lower()


@dataclass(frozen=True)
class PriceRecord:
    symbol:          str
    price:           Decimal      # USD, never float
    observed_at_ms:  int          # clock reading taken before the fetch

    def __post_init__(self):
        if not isinstance(self.price, Decimal):
            raise TypeError(f"price must be Decimal, got {type(self.price).__name__}")
        if not self.price.is_finite() or self.price < 0:
            raise ValueError(f"Invalid price for {self.symbol!r}: {self.price}")

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.observed_at_ms
