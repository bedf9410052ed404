from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from giftpnl.core.currency import NANOTON_MULTIPLIER, NanoTon, NativeAmount, Stars, native_amount
from giftpnl.models.enums import TradeCurrency

PERMILLE_BASE = 1000


@dataclass(frozen=True)
class TradeInput:
    trade_currency: TradeCurrency
    buy_price: int
    sell_price: int | None
    commission_flat_stars: int
    commission_permille: int
    buy_rate_usd: str | None
    sell_rate_usd: str | None
    quantity: int = 1


@dataclass(frozen=True)
class ProfitResult:
    net_profit: NativeAmount | None
    gross_profit: NativeAmount | None
    total_commission: NativeAmount | None
    buy_value_usd: float | None
    sell_value_usd: float | None
    net_profit_usd: float | None
    profit_percent: float | None


@dataclass(frozen=True)
class UnrealizedPnl:
    floor_price: int
    unrealized_pnl: Stars | None
    unrealized_percent: float | None


@dataclass(frozen=True)
class DashboardStats:
    total_trades: int
    open_trades: int
    closed_trades: int
    total_profit_stars: Stars | None
    total_profit_nanoton: NanoTon | None
    total_profit_usd: float | None
    win_rate: int | None
    best_trade_stars: Stars | None
    worst_trade_stars: Stars | None
    best_trade_nanoton: NanoTon | None
    worst_trade_nanoton: NanoTon | None


def calculate_commission(
    trade_currency: TradeCurrency,
    sell_price: int,
    commission_flat_stars: int,
    commission_permille: int,
) -> NativeAmount:
    """Commission charged on one sold unit.

    Stars: flat + round(sell * permille / 1000). TON: the permille part only,
    the flat fee is denominated in Stars and never mixes into TON amounts.
    """
    price = native_amount(trade_currency, sell_price)
    permille_part = (price * commission_permille + PERMILLE_BASE // 2) // PERMILLE_BASE
    if trade_currency == TradeCurrency.STARS:
        return Stars(commission_flat_stars) + permille_part
    return permille_part


def usd_value(trade_currency: TradeCurrency, amount: int, rate_usd: str | None) -> float | None:
    if rate_usd is None:
        return None
    try:
        rate = Decimal(str(rate_usd))
    except InvalidOperation:
        return None
    if not rate.is_finite() or rate <= 0:
        return None

    if trade_currency == TradeCurrency.STARS:
        return float(Decimal(int(amount)) * rate)
    return float(Decimal(int(amount)) / NANOTON_MULTIPLIER * rate)


def _percent_of(unit_net: int, buy_price: int) -> float | None:
    # Two decimals of precision via integer scaling, truncated toward zero.
    if buy_price <= 0:
        return None
    scaled = abs(int(unit_net)) * 10000 // int(buy_price)
    if unit_net < 0:
        scaled = -scaled
    return scaled / 100


def calculate_profit(trade: TradeInput) -> ProfitResult:
    currency = TradeCurrency(trade.trade_currency)
    buy_price = native_amount(currency, trade.buy_price)
    quantity = int(trade.quantity or 1)

    buy_value_usd = usd_value(currency, buy_price * quantity, trade.buy_rate_usd)

    if trade.sell_price is None:
        return ProfitResult(
            net_profit=None,
            gross_profit=None,
            total_commission=None,
            buy_value_usd=buy_value_usd,
            sell_value_usd=None,
            net_profit_usd=None,
            profit_percent=None,
        )

    sell_price = native_amount(currency, trade.sell_price)
    unit_commission = calculate_commission(
        currency, sell_price, trade.commission_flat_stars, trade.commission_permille
    )
    unit_gross = sell_price - buy_price
    unit_net = unit_gross - unit_commission

    total_commission = unit_commission * quantity
    sell_value_usd = usd_value(currency, sell_price * quantity, trade.sell_rate_usd)

    net_profit_usd = None
    if buy_value_usd is not None and sell_value_usd is not None:
        commission_usd = usd_value(currency, total_commission, trade.sell_rate_usd)
        if commission_usd is not None:
            net_profit_usd = sell_value_usd - buy_value_usd - commission_usd

    return ProfitResult(
        net_profit=unit_net * quantity,
        gross_profit=unit_gross * quantity,
        total_commission=total_commission,
        buy_value_usd=buy_value_usd,
        sell_value_usd=sell_value_usd,
        net_profit_usd=net_profit_usd,
        profit_percent=_percent_of(unit_net, buy_price),
    )


def calculate_unrealized_pnl(
    buy_price: int,
    trade_currency: TradeCurrency,
    floor_price_stars: float | int | None,
    commission_flat_stars: int,
    commission_permille: int,
    quantity: int = 1,
) -> UnrealizedPnl:
    """Profit of an open position if it were sold at the collection floor.

    Floor prices are quoted in Stars only, so TON positions get the floor
    back without a PnL figure.
    """
    if floor_price_stars is None or not math.isfinite(floor_price_stars) or floor_price_stars <= 0:
        return UnrealizedPnl(floor_price=0, unrealized_pnl=None, unrealized_percent=None)

    floor = int(Decimal(str(floor_price_stars)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if TradeCurrency(trade_currency) != TradeCurrency.STARS:
        return UnrealizedPnl(floor_price=floor, unrealized_pnl=None, unrealized_percent=None)

    buy = Stars(buy_price)
    unit_commission = calculate_commission(
        TradeCurrency.STARS, floor, commission_flat_stars, commission_permille
    )
    unit_net = Stars(floor) - buy - unit_commission
    return UnrealizedPnl(
        floor_price=floor,
        unrealized_pnl=unit_net * int(quantity or 1),
        unrealized_percent=_percent_of(unit_net, buy),
    )


def rounded_rate(part: int, whole: int) -> int | None:
    """Percentage of ``part`` in ``whole`` rounded half up to an integer."""
    if whole <= 0:
        return None
    return (part * 200 + whole) // (2 * whole)


def aggregate_stats(entries: Iterable[tuple[ProfitResult, TradeCurrency]]) -> DashboardStats:
    total = 0
    closed = 0
    wins = 0
    total_stars: Stars | None = None
    total_nanoton: NanoTon | None = None
    total_usd: float | None = None
    best: dict[TradeCurrency, NativeAmount] = {}
    worst: dict[TradeCurrency, NativeAmount] = {}

    for result, currency in entries:
        total += 1
        if result.net_profit is None:
            continue
        currency = TradeCurrency(currency)
        net = native_amount(currency, result.net_profit)
        closed += 1
        if net > 0:
            wins += 1

        if currency == TradeCurrency.STARS:
            total_stars = net if total_stars is None else total_stars + net
        else:
            total_nanoton = net if total_nanoton is None else total_nanoton + net

        if currency not in best or net > best[currency]:
            best[currency] = net
        if currency not in worst or net < worst[currency]:
            worst[currency] = net

        if result.net_profit_usd is not None:
            total_usd = result.net_profit_usd if total_usd is None else total_usd + result.net_profit_usd

    return DashboardStats(
        total_trades=total,
        open_trades=total - closed,
        closed_trades=closed,
        total_profit_stars=total_stars,
        total_profit_nanoton=total_nanoton,
        total_profit_usd=total_usd,
        win_rate=rounded_rate(wins, closed),
        best_trade_stars=best.get(TradeCurrency.STARS),
        worst_trade_stars=worst.get(TradeCurrency.STARS),
        best_trade_nanoton=best.get(TradeCurrency.TON),
        worst_trade_nanoton=worst.get(TradeCurrency.TON),
    )
