from __future__ import annotations

from pydantic import BaseModel

from giftpnl.models.enums import TradeCurrency
from giftpnl.schemas.types import AmountStr


class DashboardStatsRead(BaseModel):
    total_trades: int
    open_trades: int
    closed_trades: int
    total_profit_stars: AmountStr | None
    total_profit_nanoton: AmountStr | None
    total_profit_usd: float | None
    win_rate: int | None
    best_trade_stars: AmountStr | None
    worst_trade_stars: AmountStr | None
    best_trade_nanoton: AmountStr | None
    worst_trade_nanoton: AmountStr | None


class UnrealizedPosition(BaseModel):
    trade_id: int
    gift_name: str
    trade_currency: TradeCurrency
    quantity: int
    buy_price: AmountStr
    floor_price: int
    unrealized_pnl: AmountStr | None
    unrealized_percent: float | None
