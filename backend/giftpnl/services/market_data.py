"""
Read-only market data: TON/USD rate and gift collection floor prices.

Both sources sit behind a stale-while-revalidate cache. The PnL engine never
calls this module; routes resolve a rate here and lock it on the trade.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Awaitable, Callable, Generic, TypeVar

import httpx

from giftpnl.core.config import Settings
from giftpnl.models.enums import TradeCurrency

logger = logging.getLogger(__name__)

T = TypeVar("T")

TON_RATE_KEY = "ton_usd"
FLOOR_PRICES_KEY = "floor_prices"


class MarketDataError(Exception):
    pass


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    fetched_at: float


class SWRCache:
    """TTL cache that serves stale values when a refresh fails.

    Concurrent misses for the same key share one in-flight refresh task.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    def peek(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() - entry.fetched_at < self.ttl

    async def get(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        if self.is_fresh(key):
            return self._entries[key].value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, fetch))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))

        try:
            return await asyncio.shield(task)
        except Exception:
            entry = self._entries.get(key)
            if entry is None:
                raise
            logger.info("Serving stale %s after failed refresh", key)
            return entry.value

    async def _refresh(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        value = await fetch()
        self._entries[key] = _CacheEntry(value=value, fetched_at=self._clock())
        return value

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Retrieved here so an unobserved failure is not reported twice.
            task.exception()


def _positive_price(value: Any) -> float:
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"invalid price: {value!r}")
    return price


def parse_marketcap_response(raw: Any) -> dict[str, float]:
    """Collection name -> floor price in Stars, for both response shapes."""
    result: dict[str, float] = {}

    def usable(floor: Any) -> bool:
        return isinstance(floor, (int, float)) and not isinstance(floor, bool) and floor > 0

    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            name = item.get("collection_name") or item.get("name")
            floor = item.get("floor")
            if floor is None:
                floor = item.get("floor_price")
            if name and usable(floor):
                result[name] = float(floor)
        return result

    if isinstance(raw, dict):
        for key, value in raw.items():
            if usable(value):
                result[key] = float(value)
            elif isinstance(value, dict) and usable(value.get("floor")):
                result[key] = float(value["floor"])
    return result


class MarketDataService:
    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._rate_cache = SWRCache(settings.ton_rate_ttl_seconds, clock)
        self._floor_cache = SWRCache(settings.floor_price_ttl_seconds, clock)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def get_stars_usd_rate(self) -> Decimal:
        return self.settings.stars_usd_rate

    async def get_ton_usd_rate(self) -> float | None:
        try:
            return await self._rate_cache.get(TON_RATE_KEY, self._fetch_ton_rate)
        except MarketDataError as exc:
            logger.warning("TON/USD rate unavailable: %s", exc)
            return None

    async def get_floor_prices(self) -> dict[str, float]:
        try:
            return await self._floor_cache.get(FLOOR_PRICES_KEY, self._fetch_floor_prices)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Floor prices unavailable: %s", exc)
            return {}

    async def lock_rate(self, currency: TradeCurrency) -> Decimal | None:
        """USD rate to store on a trade at buy or sell time."""
        if currency == TradeCurrency.STARS:
            return self.get_stars_usd_rate()
        rate = await self.get_ton_usd_rate()
        return Decimal(str(rate)) if rate is not None else None

    async def _fetch_ton_rate(self) -> float:
        # First source to answer with a valid price wins.
        tasks = [asyncio.ensure_future(self._fetch_binance()), asyncio.ensure_future(self._fetch_okx())]
        try:
            for next_result in asyncio.as_completed(tasks):
                try:
                    return await next_result
                except (httpx.HTTPError, ValueError, KeyError, TypeError, IndexError) as exc:
                    logger.warning("TON rate source failed: %s", exc)
            raise MarketDataError("all TON rate sources failed")
        finally:
            for task in tasks:
                task.cancel()

    async def _fetch_binance(self) -> float:
        response = await self.client.get(
            self.settings.binance_ton_url, timeout=self.settings.rate_fetch_timeout_seconds
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or "price" not in payload:
            raise ValueError("Binance invalid response structure")
        return _positive_price(payload["price"])

    async def _fetch_okx(self) -> float:
        response = await self.client.get(self.settings.okx_ton_url, timeout=self.settings.rate_fetch_timeout_seconds)
        response.raise_for_status()
        payload = response.json()
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict) or "last" not in data[0]:
            raise ValueError("OKX invalid response structure")
        return _positive_price(data[0]["last"])

    async def _fetch_floor_prices(self) -> dict[str, float]:
        response = await self.client.get(
            self.settings.floor_prices_url, timeout=self.settings.floor_fetch_timeout_seconds
        )
        response.raise_for_status()
        return parse_marketcap_response(response.json())
