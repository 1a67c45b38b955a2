"""Minimal GET transport: fetch a URL, hand back status + body, nothing more.

Status codes are never interpreted here. Providers decide what a non-200
means; transport failures (connection errors, timeouts) propagate as
aiohttp.ClientError / asyncio.TimeoutError, and a body that is not valid
text for its charset raises UnicodeDecodeError.
"""
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

import aiohttp
from aiolimiter import AsyncLimiter
from yarl import URL


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: str
    url: str


Fetch = Callable[[str, Mapping[str, str]], Awaitable[HttpResponse]]


def build_url(url: str, params: Mapping[str, str]) -> URL:
    """Pre-encoded URL; yarl would leave "," raw, CoinGecko lists ids as "a%2Cb"."""
    if not params:
        return URL(url)
    return URL(f"{url}?{urlencode(params)}", encoded=True)


class AiohttpFetcher:

    def __init__(self, timeout_seconds: float = 10.0, requests_per_minute: int = 30):
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._limiter = AsyncLimiter(requests_per_minute, 60)

    async def __call__(self, url: str, params: Mapping[str, str]) -> HttpResponse:
        async with self._limiter:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(build_url(url, params)) as resp:
                    body = await resp.text()
                    return HttpResponse(status=resp.status, body=body, url=str(resp.url))
