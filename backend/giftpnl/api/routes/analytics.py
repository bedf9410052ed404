from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.api.deps import get_db
from giftpnl.api.routes.stats import local_today
from giftpnl.models import Trade, TradeCurrency
from giftpnl.schemas.analytics import PnlPointRead, PortfolioSliceRead, TradeOutcomesRead
from giftpnl.services.analytics import (
    pnl_time_series,
    portfolio_composition,
    range_start,
    trade_outcomes,
)
from giftpnl.services.trade_profits import trade_profit
from giftpnl.services.user_settings import get_user_settings

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _closed_trades_stmt():
    return select(Trade).where(
        Trade.deleted_at.is_(None),
        Trade.exclude_from_pnl.is_(False),
        Trade.sell_date.is_not(None),
    )


@router.get("/pnl-series", response_model=list[PnlPointRead])
async def get_pnl_series(
    granularity: Literal["day", "week", "month"] = "day",
    range_name: Literal["7d", "30d", "90d", "1y", "all"] = Query(default="30d", alias="range"),
    currency: TradeCurrency = TradeCurrency.STARS,
    db: AsyncSession = Depends(get_db),
) -> list[PnlPointRead]:
    setting = await get_user_settings(db)
    since = range_start(range_name, local_today(setting.timezone))

    stmt = _closed_trades_stmt().where(Trade.trade_currency == currency)
    if since is not None:
        stmt = stmt.where(Trade.sell_date >= since)
    result = await db.execute(stmt)

    closed = [(trade.sell_date, trade_profit(trade).net_profit) for trade in result.scalars().all()]
    return [PnlPointRead.model_validate(point) for point in pnl_time_series(closed, granularity)]


@router.get("/portfolio", response_model=list[PortfolioSliceRead])
async def get_portfolio(db: AsyncSession = Depends(get_db)) -> list[PortfolioSliceRead]:
    result = await db.execute(
        select(Trade).where(
            Trade.deleted_at.is_(None),
            Trade.exclude_from_pnl.is_(False),
            Trade.sell_date.is_(None),
        )
    )
    positions = [
        (trade.gift_name, trade.trade_currency, trade.buy_price, trade.quantity)
        for trade in result.scalars().all()
    ]
    return [PortfolioSliceRead.model_validate(item) for item in portfolio_composition(positions)]


@router.get("/outcomes", response_model=TradeOutcomesRead)
async def get_outcomes(
    period: Literal["week", "month", "total"] = "total",
    db: AsyncSession = Depends(get_db),
) -> TradeOutcomesRead:
    stmt = _closed_trades_stmt()
    if period != "total":
        setting = await get_user_settings(db)
        since = range_start("7d" if period == "week" else "30d", local_today(setting.timezone))
        stmt = stmt.where(Trade.sell_date >= since)
    result = await db.execute(stmt)

    profits = (trade_profit(trade).net_profit for trade in result.scalars().all())
    return TradeOutcomesRead.model_validate(trade_outcomes(profits))
