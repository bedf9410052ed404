from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Literal

from giftpnl.models.enums import TradeCurrency
from giftpnl.services.pnl_engine import rounded_rate

Granularity = Literal["day", "week", "month"]
RangeName = Literal["7d", "30d", "90d", "1y", "all"]

RANGE_DAYS: dict[str, int | None] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365, "all": None}


@dataclass
class PnlPoint:
    date: date
    profit: int
    cumulative: int
    trades: int


@dataclass
class TradeOutcomes:
    total: int
    wins: int
    losses: int
    breakeven: int
    win_rate: int | None


@dataclass
class PortfolioSlice:
    gift_name: str
    currency: TradeCurrency
    count: int
    total_buy: int


def range_start(range_name: str, today: date) -> date | None:
    days = RANGE_DAYS[range_name]
    if days is None:
        return None
    return today - timedelta(days=days)


def period_start(day: date, granularity: str) -> date:
    if granularity == "week":
        return day - timedelta(days=day.weekday())
    if granularity == "month":
        return day.replace(day=1)
    return day


def pnl_time_series(closed: Iterable[tuple[date, int]], granularity: str = "day") -> list[PnlPoint]:
    """Per-period profit with a running total, oldest period first.

    ``closed`` holds (sell_date, net_profit) of closed trades in one currency.
    """
    profit_by_period: dict[date, int] = defaultdict(int)
    count_by_period: dict[date, int] = defaultdict(int)
    for sell_date, net_profit in closed:
        key = period_start(sell_date, granularity)
        profit_by_period[key] += int(net_profit)
        count_by_period[key] += 1

    points: list[PnlPoint] = []
    cumulative = 0
    for key in sorted(profit_by_period):
        cumulative += profit_by_period[key]
        points.append(
            PnlPoint(date=key, profit=profit_by_period[key], cumulative=cumulative, trades=count_by_period[key])
        )
    return points


def trade_outcomes(net_profits: Iterable[int]) -> TradeOutcomes:
    wins = losses = breakeven = 0
    for net in net_profits:
        if net > 0:
            wins += 1
        elif net < 0:
            losses += 1
        else:
            breakeven += 1
    total = wins + losses + breakeven
    return TradeOutcomes(
        total=total,
        wins=wins,
        losses=losses,
        breakeven=breakeven,
        win_rate=rounded_rate(wins, total),
    )


def portfolio_composition(
    open_positions: Iterable[tuple[str, TradeCurrency, int, int]],
    limit: int = 10,
) -> list[PortfolioSlice]:
    """Group open positions (gift_name, currency, buy_price, quantity) by gift.

    Ordered by total buy value; values of different currencies are only
    compared for ordering, never summed together.
    """
    grouped: dict[tuple[str, TradeCurrency], PortfolioSlice] = {}
    for gift_name, currency, buy_price, quantity in open_positions:
        key = (gift_name, TradeCurrency(currency))
        entry = grouped.get(key)
        if entry is None:
            entry = grouped[key] = PortfolioSlice(gift_name=gift_name, currency=key[1], count=0, total_buy=0)
        entry.count += int(quantity)
        entry.total_buy += int(buy_price) * int(quantity)

    ordered = sorted(grouped.values(), key=lambda item: item.total_buy, reverse=True)
    return ordered[:limit]
