"""REST client for the trade backend.

Wraps ``httpx.AsyncClient`` around the ``/trades`` endpoint family. Every
non-2xx response or transport failure surfaces as ``TradeApiError``.
"""

import logging

import httpx
from pydantic import ValidationError

from tracker.config import settings
from tracker.schemas.trade import TradeRecord

logger = logging.getLogger(__name__)


class TradeApiError(Exception):
    """The backend rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TradeApiClient:
    """Async client for ``/trades`` on the configured API base URL."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.request_timeout if timeout is None else timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        self._ensure_client()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(self, action: str, method: str, path: str, **kwargs) -> httpx.Response:
        client = self._ensure_client()
        try:
            resp = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TradeApiError(f"Failed to {action}: {e}") from e
        if resp.is_error:
            raise TradeApiError(
                f"Failed to {action}: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        logger.debug(f"{method} {path} -> {resp.status_code}")
        return resp

    @staticmethod
    def _json(resp: httpx.Response, action: str):
        try:
            return resp.json()
        except ValueError as e:
            raise TradeApiError(f"Failed to {action}: invalid JSON response") from e

    @staticmethod
    def _record(item, action: str) -> TradeRecord:
        try:
            return TradeRecord.model_validate(item)
        except ValidationError as e:
            raise TradeApiError(f"Failed to {action}: malformed trade record ({e.error_count()} errors)") from e

    async def list_trades(self) -> list[TradeRecord]:
        resp = await self._request("fetch trades", "GET", "/trades")
        data = self._json(resp, "fetch trades")
        if not isinstance(data, list):
            raise TradeApiError("Failed to fetch trades: expected a JSON array")
        return [self._record(item, "fetch trades") for item in data]

    async def create_trade(self, trade: TradeRecord) -> TradeRecord:
        """POST one trade; ``clientId`` is sent along and stored if the backend keeps it."""
        resp = await self._request(
            "add trade", "POST", "/trades", json=trade.to_wire(include_id=False)
        )
        return self._record(self._json(resp, "add trade"), "add trade")

    async def update_trade(self, trade: TradeRecord) -> TradeRecord:
        if not trade.id:
            raise ValueError("Cannot update a trade without an identifier")
        resp = await self._request(
            "update trade", "PATCH", f"/trades/{trade.id}", json=trade.to_wire(include_id=False)
        )
        return self._record(self._json(resp, "update trade"), "update trade")

    async def delete_trade(self, trade_id: str):
        await self._request("delete trade", "DELETE", f"/trades/{trade_id}")

    async def bulk_create_trades(self, trades: list[TradeRecord]) -> list[TradeRecord] | None:
        """Create a batch; returns None when the server sends no array back."""
        body = {"trades": [t.to_wire(include_id=False) for t in trades]}
        resp = await self._request("bulk add trades", "POST", "/trades/bulk-create", json=body)
        data = self._json(resp, "bulk add trades")
        if not isinstance(data, list):
            return None
        return [self._record(item, "bulk add trades") for item in data]

    async def bulk_delete_trades(self, ids: list[str]):
        await self._request("bulk delete trades", "POST", "/trades/bulk-delete", json={"ids": ids})
