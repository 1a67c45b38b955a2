"""TTLCache — wraps any PriceProvider with a freshness window and per-symbol single-flight."""
import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from decimal import Decimal

import structlog

from cryptoprice.core.prices.base import BatchPriceProvider, PriceProvider
from cryptoprice.core.prices.errors import PriceLookupError, UnknownSymbol
from cryptoprice.core.prices.models import PriceRecord, normalize_symbol

logger = structlog.get_logger()

Clock = Callable[[], int]

DEFAULT_TTL_MS = 5 * 60_000


def system_clock() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class TTLCache(BatchPriceProvider):
    """
    Decorator that serves a stored price while it is at most `ttl_ms` old.

    Keys are normalized symbols, so "BTC" and "btc" share one entry. A refresh
    that fails stores nothing: an older stale entry stays in place as
    last-known (visible through peek()) but is never served, and the error
    reaches the caller unchanged. Concurrent lookups of the same missing or
    stale key share one in-flight refresh.
    """

    def __init__(
        self,
        provider: PriceProvider,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Clock | None = None,
        max_entries: int | None = None,
    ):
        if ttl_ms < 0:
            raise ValueError(f"ttl_ms must be >= 0, got {ttl_ms}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._provider = provider
        self._ttl_ms = ttl_ms
        self._clock = clock or system_clock
        self._max_entries = max_entries
        self._entries: OrderedDict[str, PriceRecord] = OrderedDict()
        # key -> task resolving to {key: price, ...} for every key it refreshes
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, symbol: str) -> PriceRecord | None:
        """Stored record for `symbol`, fresh or not, without refreshing."""
        return self._entries.get(normalize_symbol(symbol))

    def clear(self) -> None:
        self._entries.clear()

    async def initialize(self) -> None:
        await self._provider.initialize()

    async def get_price_by_symbol(self, symbol: str) -> Decimal:
        key = normalize_symbol(symbol)
        now = self._clock()
        record = self._lookup(key, now)
        if record is not None:
            return record.price
        prices = await self._load([key], now)
        return prices[key]

    async def get_prices_by_symbols(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        keys = list(dict.fromkeys(normalize_symbol(s) for s in symbols))
        now = self._clock()

        prices: dict[str, Decimal] = {}
        misses: list[str] = []
        for key in keys:
            record = self._lookup(key, now)
            if record is None:
                misses.append(key)
            else:
                prices[key] = record.price

        if misses:
            prices.update(await self._load(misses, now))
        return {key: prices[key] for key in keys}

    def _is_stale(self, record: PriceRecord, now: int) -> bool:
        # Exactly ttl_ms old is still fresh
        return record.age_ms(now) > self._ttl_ms

    def _lookup(self, key: str, now: int) -> PriceRecord | None:
        record = self._entries.get(key)
        if record is None:
            logger.debug("cache.miss", symbol=key)
            return None
        if self._is_stale(record, now):
            logger.debug("cache.stale", symbol=key, age_ms=record.age_ms(now))
            return None
        if self._max_entries is not None:
            self._entries.move_to_end(key)
        logger.debug("cache.hit", symbol=key)
        return record

    def _store(self, record: PriceRecord) -> None:
        self._entries[record.symbol] = record
        self._entries.move_to_end(record.symbol)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache.evicted", symbol=evicted)

    async def _load(self, keys: list[str], now: int) -> dict[str, Decimal]:
        """Join refreshes already in flight; start one shared refresh for the rest."""
        waiting: dict[str, asyncio.Task] = {}
        pending: list[str] = []
        for key in keys:
            task = self._in_flight.get(key)
            if task is None:
                pending.append(key)
            else:
                waiting[key] = task

        if pending:
            task = asyncio.ensure_future(self._refresh(pending, now))
            # Marks the failure as retrieved even if every waiter was cancelled
            task.add_done_callback(_retrieve_exception)
            for key in pending:
                self._in_flight[key] = task
                waiting[key] = task

        # shield: a cancelled caller must not cancel a refresh others are awaiting
        tasks = list(dict.fromkeys(waiting.values()))
        outcomes = dict(zip(tasks, await asyncio.gather(
            *(asyncio.shield(t) for t in tasks),
            return_exceptions=True,
        )))

        prices: dict[str, Decimal] = {}
        retry: list[str] = []
        for key, task in waiting.items():
            outcome = outcomes[task]
            if isinstance(outcome, BaseException):
                # A joined batch can fail on someone else's unknown symbol; look this key up alone
                if key not in pending and _fails_on_other_symbol(outcome, key):
                    retry.append(key)
                    continue
                raise outcome
            prices[key] = outcome[key]

        if retry:
            logger.debug("cache.retry_after_joined_failure", symbols=retry)
            prices.update(await self._load(retry, now))
        return prices

    async def _refresh(self, keys: list[str], now: int) -> dict[str, Decimal]:
        this_task = asyncio.current_task()
        try:
            fetched = await self._fetch(keys)
            for key in keys:
                self._store(PriceRecord(key, fetched[key], now))
            logger.info("cache.stored", symbols=keys, observed_at_ms=now)
            return {key: fetched[key] for key in keys}
        except PriceLookupError as e:
            logger.warning("cache.refresh_failed", symbols=keys, error=str(e), kind=type(e).__name__)
            raise
        finally:
            for key in keys:
                if self._in_flight.get(key) is this_task:
                    del self._in_flight[key]

    async def _fetch(self, keys: list[str]) -> dict[str, Decimal]:
        if len(keys) == 1:
            return {keys[0]: await self._provider.get_price_by_symbol(keys[0])}
        if isinstance(self._provider, BatchPriceProvider):
            return await self._provider.get_prices_by_symbols(keys)
        results = await asyncio.gather(
            *(self._provider.get_price_by_symbol(key) for key in keys),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return dict(zip(keys, results))


def _retrieve_exception(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()


def _fails_on_other_symbol(error: BaseException, key: str) -> bool:
    return (
        isinstance(error, UnknownSymbol)
        and error.symbol is not None
        and normalize_symbol(error.symbol) != key
    )
