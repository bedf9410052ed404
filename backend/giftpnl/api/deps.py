from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.db.session import get_session
from giftpnl.services.market_data import MarketDataService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_market_data(request: Request) -> MarketDataService:
    return request.app.state.market_data
