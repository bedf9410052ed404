from fastapi import APIRouter

from giftpnl.api.routes import analytics, imports, market, settings, stats, trades

api_router = APIRouter()
api_router.include_router(imports.router)
api_router.include_router(trades.router)
api_router.include_router(stats.router)
api_router.include_router(analytics.router)
api_router.include_router(market.router)
api_router.include_router(settings.router)
