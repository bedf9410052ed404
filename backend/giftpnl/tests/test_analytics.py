from __future__ import annotations

from datetime import date

from giftpnl.models import TradeCurrency
from giftpnl.services.analytics import (
    pnl_time_series,
    portfolio_composition,
    range_start,
    trade_outcomes,
)


def test_daily_series_accumulates_in_date_order() -> None:
    points = pnl_time_series(
        [(date(2024, 1, 2), 100), (date(2024, 1, 1), -50), (date(2024, 1, 2), 30)],
    )
    assert [(p.date, p.profit, p.cumulative, p.trades) for p in points] == [
        (date(2024, 1, 1), -50, -50, 1),
        (date(2024, 1, 2), 130, 80, 2),
    ]


def test_weekly_series_starts_on_monday() -> None:
    points = pnl_time_series(
        [(date(2024, 1, 3), 10), (date(2024, 1, 7), 5), (date(2024, 1, 8), 1)],
        granularity="week",
    )
    assert [(p.date, p.profit) for p in points] == [(date(2024, 1, 1), 15), (date(2024, 1, 8), 1)]


def test_monthly_series() -> None:
    points = pnl_time_series([(date(2024, 1, 31), 7), (date(2024, 2, 1), 3)], granularity="month")
    assert [p.date for p in points] == [date(2024, 1, 1), date(2024, 2, 1)]
    assert points[-1].cumulative == 10


def test_empty_series() -> None:
    assert pnl_time_series([]) == []


def test_trade_outcomes() -> None:
    outcomes = trade_outcomes([10, -5, 0, 3])
    assert (outcomes.total, outcomes.wins, outcomes.losses, outcomes.breakeven) == (4, 2, 1, 1)
    assert outcomes.win_rate == 50
    assert trade_outcomes([]).win_rate is None


def test_portfolio_groups_by_gift_and_currency() -> None:
    slices = portfolio_composition(
        [
            ("PlushPepe", TradeCurrency.STARS, 1000, 2),
            ("PlushPepe", TradeCurrency.STARS, 500, 1),
            ("JellyFish", TradeCurrency.TON, 3_000_000_000, 1),
        ]
    )
    assert [(s.gift_name, s.currency, s.count, s.total_buy) for s in slices] == [
        ("JellyFish", TradeCurrency.TON, 1, 3_000_000_000),
        ("PlushPepe", TradeCurrency.STARS, 3, 2500),
    ]


def test_portfolio_limit() -> None:
    positions = [(f"Gift{i}", TradeCurrency.STARS, i + 1, 1) for i in range(15)]
    slices = portfolio_composition(positions, limit=10)
    assert len(slices) == 10
    assert slices[0].gift_name == "Gift14"


def test_range_start() -> None:
    assert range_start("7d", date(2024, 1, 10)) == date(2024, 1, 3)
    assert range_start("1y", date(2024, 12, 31)) == date(2024, 1, 1)
    assert range_start("all", date(2024, 1, 10)) is None
