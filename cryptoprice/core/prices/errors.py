"""Price lookup failures.

PriceLookupError (base)
├── UnknownSymbol        symbol not in the index; raised before any network call
└── ProviderUnavailable  bad status, transport failure, timeout or malformed body
"""


class PriceLookupError(Exception):

    def __init__(self, detail: str, symbol: str | None = None):
        super().__init__(detail)
        self.detail = detail
        self.symbol = symbol


class UnknownSymbol(PriceLookupError):

    def __init__(self, symbol: str):
        super().__init__(f"Unknown symbol: {symbol!r}", symbol=symbol)


class ProviderUnavailable(PriceLookupError):

    def __init__(
        self,
        detail: str,
        symbol: str | None = None,
        status: int | None = None,
        url: str | None = None,
    ):
        super().__init__(detail, symbol=symbol)
        self.status = status
        self.url = url
