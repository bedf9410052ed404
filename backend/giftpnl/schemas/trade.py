from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from giftpnl.models.enums import Marketplace, TradeCurrency
from giftpnl.schemas.types import AmountStr


class ProfitRead(BaseModel):
    net_profit: AmountStr | None
    gross_profit: AmountStr | None
    total_commission: AmountStr | None
    buy_value_usd: float | None
    sell_value_usd: float | None
    net_profit_usd: float | None
    profit_percent: float | None


class TradeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    gift_link: str | None
    gift_slug: str
    gift_name: str
    gift_number: int | None
    display_name: str
    image_url: str | None
    trade_currency: TradeCurrency
    buy_price: AmountStr
    sell_price: AmountStr | None
    buy_price_display: str
    sell_price_display: str | None
    quantity: int
    buy_date: date
    sell_date: date | None
    commission_flat_stars: AmountStr
    commission_permille: int
    buy_rate_usd: str | None
    sell_rate_usd: str | None
    buy_marketplace: Marketplace | None
    sell_marketplace: Marketplace | None
    exclude_from_pnl: bool
    notes: str | None
    deleted_at: datetime | None
    created_at: datetime
    profit: ProfitRead


class TradePage(BaseModel):
    data: list[TradeRead]
    next_cursor: int | None = None


class TradeCreate(BaseModel):
    gift_url: str = Field(min_length=1, max_length=500)
    trade_currency: TradeCurrency
    buy_price: str
    sell_price: str | None = None
    quantity: int = Field(default=1, ge=1, le=9999)
    buy_date: date
    sell_date: date | None = None
    commission_flat_stars: int | None = Field(default=None, ge=0)
    commission_permille: int | None = Field(default=None, ge=0, le=1000)
    buy_marketplace: Marketplace | None = None
    sell_marketplace: Marketplace | None = None
    notes: str | None = Field(default=None, max_length=1000)
    exclude_from_pnl: bool = False


class TradeUpdate(BaseModel):
    sell_price: str | None = None
    sell_date: date | None = None
    sell_marketplace: Marketplace | None = None
    notes: str | None = Field(default=None, max_length=1000)
    commission_flat_stars: int | None = Field(default=None, ge=0)
    commission_permille: int | None = Field(default=None, ge=0, le=1000)
    exclude_from_pnl: bool | None = None
