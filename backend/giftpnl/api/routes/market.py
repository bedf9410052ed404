from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from giftpnl.api.deps import get_market_data
from giftpnl.schemas.market import ExchangeRatesRead, FloorPricesRead
from giftpnl.services.market_data import MarketDataService

router = APIRouter(prefix="/api/market", tags=["market"])


@router.get("/exchange-rates", response_model=ExchangeRatesRead)
async def get_exchange_rates(market: MarketDataService = Depends(get_market_data)) -> ExchangeRatesRead:
    return ExchangeRatesRead(
        ton_usd=await market.get_ton_usd_rate(),
        stars_usd=float(market.get_stars_usd_rate()),
        fetched_at=datetime.now(timezone.utc),
    )


@router.get("/floor-prices", response_model=FloorPricesRead)
async def get_floor_prices(market: MarketDataService = Depends(get_market_data)) -> FloorPricesRead:
    return FloorPricesRead(floor_prices=await market.get_floor_prices())
