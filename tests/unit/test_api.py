"""API endpoint tests — FastAPI TestClient against a fake upstream."""
import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from cryptoprice import __version__
from cryptoprice.api.v1.app import app
from cryptoprice.core.http import HttpResponse
from cryptoprice.core.prices import CoinGeckoProvider, TTLCache, get_provider


class StubUpstream:

    def __init__(self):
        self.price_status = 200
        self.price_calls = 0

    async def __call__(self, url, params):
        if url.endswith("/coins/list"):
            body = [{"id": "bitcoin", "symbol": "btc"}, {"id": "ethereum", "symbol": "eth"}]
            return HttpResponse(200, json.dumps(body), url)
        self.price_calls += 1
        if self.price_status != 200:
            return HttpResponse(self.price_status, "upstream error", url)
        body = {"bitcoin": {"usd": "50000.12"}, "ethereum": {"usd": 3000.5}}
        return HttpResponse(200, json.dumps(body), url)


@pytest.fixture
def upstream():
    return StubUpstream()


@pytest.fixture
def client(upstream):
    cache = TTLCache(CoinGeckoProvider(base_url="https://cg.test/api/v3", fetch=upstream))
    asyncio.run(cache.initialize())
    app.dependency_overrides[get_provider] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": __version__}


def test_get_price(client, upstream):
    r = client.get("/api/v1/prices/BTC")
    assert r.status_code == 200
    assert r.json() == {"symbol": "btc", "price": "50000.12", "currency": "usd"}

    client.get("/api/v1/prices/btc")
    assert upstream.price_calls == 1


def test_get_price_unknown_symbol(client, upstream):
    r = client.get("/api/v1/prices/notacoin")
    assert r.status_code == 404
    body = r.json()
    assert body["code"] == "UNKNOWN_SYMBOL"
    assert body["details"]["symbol"] == "notacoin"
    assert upstream.price_calls == 0


def test_get_price_upstream_down(client, upstream):
    upstream.price_status = 500
    r = client.get("/api/v1/prices/eth")
    assert r.status_code == 503
    body = r.json()
    assert body["code"] == "PROVIDER_UNAVAILABLE"
    assert body["details"]["upstream_status"] == 500


def test_get_prices_batch(client, upstream):
    r = client.get("/api/v1/prices", params={"symbols": "btc,ETH"})
    assert r.status_code == 200
    assert r.json() == {"currency": "usd", "prices": {"btc": "50000.12", "eth": "3000.5"}}
    assert upstream.price_calls == 1


def test_get_prices_requires_a_symbol(client):
    r = client.get("/api/v1/prices", params={"symbols": " , "})
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"
