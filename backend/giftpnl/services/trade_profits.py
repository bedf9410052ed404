from __future__ import annotations

from typing import Iterable

from giftpnl.models import Trade
from giftpnl.services.pnl_engine import (
    DashboardStats,
    ProfitResult,
    TradeInput,
    UnrealizedPnl,
    aggregate_stats,
    calculate_profit,
    calculate_unrealized_pnl,
)


def _rate_text(rate) -> str | None:
    return str(rate) if rate is not None else None


def to_trade_input(trade: Trade) -> TradeInput:
    return TradeInput(
        trade_currency=trade.trade_currency,
        buy_price=trade.buy_price,
        sell_price=trade.sell_price,
        commission_flat_stars=trade.commission_flat_stars,
        commission_permille=trade.commission_permille,
        buy_rate_usd=_rate_text(trade.buy_rate_usd),
        sell_rate_usd=_rate_text(trade.sell_rate_usd),
        quantity=trade.quantity or 1,
    )


def trade_profit(trade: Trade) -> ProfitResult:
    return calculate_profit(to_trade_input(trade))


def dashboard_stats(trades: Iterable[Trade]) -> DashboardStats:
    return aggregate_stats((trade_profit(trade), trade.trade_currency) for trade in trades)


def unrealized_for(trade: Trade, floor_prices: dict[str, float]) -> UnrealizedPnl:
    return calculate_unrealized_pnl(
        trade.buy_price,
        trade.trade_currency,
        floor_prices.get(trade.gift_name),
        trade.commission_flat_stars,
        trade.commission_permille,
        trade.quantity or 1,
    )
