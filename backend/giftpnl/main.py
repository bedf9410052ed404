from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from giftpnl.api.routes import api_router
from giftpnl.core.config import get_settings
from giftpnl.core.log_config import configure_logging
from giftpnl.db.base import Base
from giftpnl.db.migrations import apply_schema_migrations
from giftpnl.db.session import engine
from giftpnl.services.market_data import MarketDataService

settings = get_settings()
configure_logging(settings)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(apply_schema_migrations)
    app.state.market_data = MarketDataService(settings)
    logger.info("%s started", settings.app_name)
    try:
        yield
    finally:
        await app.state.market_data.aclose()
        await engine.dispose()


app = FastAPI(title="Gift PnL Tracker API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.get("/api/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(api_router)
