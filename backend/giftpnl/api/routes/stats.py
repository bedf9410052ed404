from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Literal
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.api.deps import get_db, get_market_data
from giftpnl.models import Trade, TradeCurrency
from giftpnl.schemas.stats import DashboardStatsRead, UnrealizedPosition
from giftpnl.services.market_data import MarketDataService
from giftpnl.services.trade_profits import dashboard_stats, unrealized_for
from giftpnl.services.user_settings import get_user_settings

router = APIRouter(prefix="/api/stats", tags=["stats"])

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}


def local_today(timezone: str) -> date:
    return datetime.now(ZoneInfo(timezone)).date()


def _load_trades(currency: TradeCurrency | None, since: date | None):
    stmt = (
        select(Trade)
        .where(Trade.deleted_at.is_(None), Trade.exclude_from_pnl.is_(False))
        .order_by(Trade.buy_date.desc(), Trade.id.desc())
    )
    if currency:
        stmt = stmt.where(Trade.trade_currency == currency)
    if since is not None:
        # Period views only cover trades closed inside the period.
        stmt = stmt.where(Trade.sell_date.is_not(None), Trade.sell_date >= since)
    return stmt


@router.get("/dashboard", response_model=DashboardStatsRead)
async def get_dashboard(
    period: Literal["day", "week", "month", "total"] = "total",
    currency: TradeCurrency | None = None,
    db: AsyncSession = Depends(get_db),
) -> DashboardStatsRead:
    since = None
    if period != "total":
        setting = await get_user_settings(db)
        since = local_today(setting.timezone) - timedelta(days=PERIOD_DAYS[period])

    result = await db.execute(_load_trades(currency, since))
    stats = dashboard_stats(result.scalars().all())
    return DashboardStatsRead(
        total_trades=stats.total_trades,
        open_trades=stats.open_trades,
        closed_trades=stats.closed_trades,
        total_profit_stars=stats.total_profit_stars,
        total_profit_nanoton=stats.total_profit_nanoton,
        total_profit_usd=stats.total_profit_usd,
        win_rate=stats.win_rate,
        best_trade_stars=stats.best_trade_stars,
        worst_trade_stars=stats.worst_trade_stars,
        best_trade_nanoton=stats.best_trade_nanoton,
        worst_trade_nanoton=stats.worst_trade_nanoton,
    )


@router.get("/unrealized", response_model=list[UnrealizedPosition])
async def get_unrealized(
    db: AsyncSession = Depends(get_db),
    market: MarketDataService = Depends(get_market_data),
) -> list[UnrealizedPosition]:
    result = await db.execute(
        select(Trade)
        .where(Trade.deleted_at.is_(None), Trade.sell_price.is_(None))
        .order_by(Trade.buy_date.desc(), Trade.id.desc())
    )
    trades = result.scalars().all()
    if not trades:
        return []

    floor_prices = await market.get_floor_prices()
    positions = []
    for trade in trades:
        pnl = unrealized_for(trade, floor_prices)
        positions.append(
            UnrealizedPosition(
                trade_id=trade.id,
                gift_name=trade.gift_name,
                trade_currency=trade.trade_currency,
                quantity=trade.quantity,
                buy_price=trade.buy_price,
                floor_price=pnl.floor_price,
                unrealized_pnl=pnl.unrealized_pnl,
                unrealized_percent=pnl.unrealized_percent,
            )
        )
    return positions
