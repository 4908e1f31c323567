"""Shared fixtures: an in-memory trade backend behind httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

from tracker.services.trade_api import TradeApiClient
from tracker.store import TradeStore

BASE_URL = "http://testserver/api"


def trade_payload(**overrides) -> dict:
    """A valid long trade in wire format."""
    data = {
        "symbol": "BTCUSDT",
        "timeframe": "H1",
        "side": "buy",
        "riskAmount": 100,
        "leverage": 1,
        "entryPrice": 100,
        "stopLoss": 95,
        "takeProfit": 110,
        "quantity": 20,
        "positionSize": 2000,
        "rr": 2,
        "fee": 0,
        "strategy": "breakout",
        "note": "",
        "entryTime": "2024-05-01T10:00:00+00:00",
        "exitTime": "",
    }
    data.update(overrides)
    return data


class FakeBackend:
    """Minimal stand-in for the trade REST service.

    Routes are named ``list``, ``create``, ``update``, ``delete``,
    ``bulk-create`` and ``bulk-delete``; add a name to ``fail`` to make that
    route answer 500.
    """

    def __init__(self, echo_client_id: bool = True):
        self.trades: dict[str, dict] = {}
        self.requests: list[tuple[str, str, dict | None]] = []
        self.fail: set[str] = set()
        self.echo_client_id = echo_client_id
        self.hold: asyncio.Event | None = None  # pauses the next PATCH
        self.held = False
        self._next_id = 1

    def seed(self, **overrides) -> dict:
        record = trade_payload(**overrides)
        record["_id"] = self._new_id()
        self.trades[record["_id"]] = record
        return record

    def _new_id(self) -> str:
        trade_id = f"t{self._next_id}"
        self._next_id += 1
        return trade_id

    def calls(self, route: str) -> int:
        return sum(1 for r, _, _ in self.requests if r == route)

    def _store(self, body: dict) -> dict:
        record = dict(body)
        record["_id"] = self._new_id()
        if not self.echo_client_id:
            record.pop("clientId", None)
        self.trades[record["_id"]] = record
        return record

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        parts = [p for p in path.split("/") if p]
        body = json.loads(request.content) if request.content else None

        if request.method == "GET" and parts == ["trades"]:
            route = "list"
        elif request.method == "POST" and parts == ["trades"]:
            route = "create"
        elif request.method == "POST" and parts == ["trades", "bulk-create"]:
            route = "bulk-create"
        elif request.method == "POST" and parts == ["trades", "bulk-delete"]:
            route = "bulk-delete"
        elif request.method == "PATCH" and len(parts) == 2:
            route = "update"
        elif request.method == "DELETE" and len(parts) == 2:
            route = "delete"
        else:
            return httpx.Response(404, json={"message": "Not found"})

        self.requests.append((route, request.method, body))

        if route == "update" and self.hold is not None:
            hold, self.hold = self.hold, None
            self.held = True
            await hold.wait()

        if route in self.fail:
            return httpx.Response(500, json={"message": "boom"})

        if route == "list":
            return httpx.Response(200, json=list(self.trades.values()))
        if route == "create":
            return httpx.Response(201, json=self._store(body))
        if route == "bulk-create":
            return httpx.Response(201, json=[self._store(t) for t in body["trades"]])
        if route == "bulk-delete":
            for trade_id in body["ids"]:
                self.trades.pop(trade_id, None)
            return httpx.Response(200, json={"deleted": len(body["ids"])})

        trade_id = parts[1]
        if trade_id not in self.trades:
            return httpx.Response(404, json={"message": "Trade not found"})
        if route == "update":
            self.trades[trade_id] = {**self.trades[trade_id], **body, "_id": trade_id}
            return httpx.Response(200, json=self.trades[trade_id])
        del self.trades[trade_id]
        return httpx.Response(204)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api(backend) -> TradeApiClient:
    return TradeApiClient(base_url=BASE_URL, transport=httpx.MockTransport(backend.handle))


@pytest.fixture
def store(api) -> TradeStore:
    return TradeStore(api)


@pytest.fixture
def make_store():
    """Build a (store, backend) pair over a fresh backend."""

    def factory(**backend_options) -> tuple[TradeStore, FakeBackend]:
        backend = FakeBackend(**backend_options)
        transport = httpx.MockTransport(backend.handle)
        return TradeStore(TradeApiClient(base_url=BASE_URL, transport=transport)), backend

    return factory


@pytest.fixture
def payload():
    """Factory for wire-format trade dicts."""
    return trade_payload
