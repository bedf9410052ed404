from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ExchangeRatesRead(BaseModel):
    ton_usd: float | None
    stars_usd: float
    fetched_at: datetime


class FloorPricesRead(BaseModel):
    floor_prices: dict[str, float]
