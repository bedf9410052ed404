from __future__ import annotations

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from giftpnl.api.deps import get_db, get_market_data
from giftpnl.db.base import Base
from giftpnl.models import TradeCurrency

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class FakeMarketData:
    """Stands in for MarketDataService so API tests never touch the network."""

    def __init__(self, ton_usd: float | None = 5.0, floor_prices: dict[str, float] | None = None) -> None:
        self.ton_usd = ton_usd
        self.floor_prices = floor_prices or {}

    def get_stars_usd_rate(self) -> Decimal:
        return Decimal("0.013")

    async def get_ton_usd_rate(self) -> float | None:
        return self.ton_usd

    async def get_floor_prices(self) -> dict[str, float]:
        return dict(self.floor_prices)

    async def lock_rate(self, currency: TradeCurrency) -> Decimal | None:
        if currency == TradeCurrency.STARS:
            return self.get_stars_usd_rate()
        return Decimal(str(self.ton_usd)) if self.ton_usd is not None else None


@pytest.fixture()
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine(TEST_DB_URL, future=True)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def market_data() -> FakeMarketData:
    return FakeMarketData(floor_prices={"PlushPepe": 5000.4, "JellyFish": 120.0})


@pytest.fixture()
async def client(market_data: FakeMarketData) -> AsyncGenerator[AsyncClient, None]:
    from giftpnl.main import app

    # One shared connection so every request sees the same in-memory database.
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool, connect_args={"check_same_thread": False})
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_market_data] = lambda: market_data
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
def trades_csv_bytes() -> bytes:
    return (
        "Gift Name,Gift Number,Quantity,Buy Date,Sell Date,Currency,Buy Price,Sell Price,Buy Marketplace,Sell Marketplace\n"
        "PlushPepe,123,1,2024-01-01,2024-01-05,STARS,1000,1500,fragment,getgems\n"
        "JellyFish,7,2,2024-02-01,,TON,3.5,,getgems,\n"
        "Broken,,abc,2024-02-01,,DOGE,,,,\n"
        "\n"
        "Late Gift,9,1,2024-03-10,2024-03-01,STARS,100,90,,\n"
    ).encode("utf-8")
