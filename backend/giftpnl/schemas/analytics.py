from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict

from giftpnl.models.enums import TradeCurrency
from giftpnl.schemas.types import AmountStr


class PnlPointRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    date: date
    profit: AmountStr
    cumulative: AmountStr
    trades: int


class TradeOutcomesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    total: int
    wins: int
    losses: int
    breakeven: int
    win_rate: int | None


class PortfolioSliceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    gift_name: str
    currency: TradeCurrency
    count: int
    total_buy: AmountStr
