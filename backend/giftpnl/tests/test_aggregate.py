from __future__ import annotations

import pytest

from giftpnl.core.currency import NanoTon, Stars
from giftpnl.models import TradeCurrency
from giftpnl.services.pnl_engine import ProfitResult, aggregate_stats, rounded_rate


def _closed(net: int, usd: float | None = None) -> ProfitResult:
    return ProfitResult(
        net_profit=net,
        gross_profit=net,
        total_commission=0,
        buy_value_usd=None,
        sell_value_usd=None,
        net_profit_usd=usd,
        profit_percent=None,
    )


def _open() -> ProfitResult:
    return ProfitResult(None, None, None, 1.0, None, None, None)


def test_aggregate_keeps_currencies_apart() -> None:
    stats = aggregate_stats(
        [
            (_closed(425, 5.5), TradeCurrency.STARS),
            (_closed(-100, -1.3), TradeCurrency.STARS),
            (_closed(1_250_000_000, 3.5), TradeCurrency.TON),
            (_open(), TradeCurrency.STARS),
        ]
    )
    assert stats.total_trades == 4
    assert stats.open_trades == 1
    assert stats.closed_trades == 3
    assert stats.total_profit_stars == 325
    assert isinstance(stats.total_profit_stars, Stars)
    assert stats.total_profit_nanoton == 1_250_000_000
    assert isinstance(stats.total_profit_nanoton, NanoTon)
    assert stats.total_profit_usd == pytest.approx(7.7)
    assert stats.win_rate == 67
    assert stats.best_trade_stars == 425
    assert stats.worst_trade_stars == -100
    assert stats.best_trade_nanoton == 1_250_000_000
    assert stats.worst_trade_nanoton == 1_250_000_000


def test_aggregate_of_nothing() -> None:
    stats = aggregate_stats([])
    assert stats.total_trades == 0
    assert stats.closed_trades == 0
    assert stats.total_profit_stars is None
    assert stats.total_profit_nanoton is None
    assert stats.total_profit_usd is None
    assert stats.win_rate is None
    assert stats.best_trade_stars is None


def test_aggregate_only_open_positions() -> None:
    stats = aggregate_stats([(_open(), TradeCurrency.TON), (_open(), TradeCurrency.STARS)])
    assert stats.open_trades == 2
    assert stats.win_rate is None
    assert stats.total_profit_nanoton is None


def test_breakeven_is_not_a_win() -> None:
    stats = aggregate_stats([(_closed(0), TradeCurrency.STARS), (_closed(10), TradeCurrency.STARS)])
    assert stats.win_rate == 50
    assert stats.total_profit_usd is None


def test_rounded_rate_half_up() -> None:
    assert rounded_rate(1, 8) == 13
    assert rounded_rate(2, 3) == 67
    assert rounded_rate(1, 3) == 33
    assert rounded_rate(0, 5) == 0
    assert rounded_rate(0, 0) is None
