from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from giftpnl.core.currency import STARS_USD_RATE


class Settings(BaseSettings):
    app_name: str = "Gift PnL Tracker"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./giftpnl.db"
    default_timezone: str = "UTC"

    # Telegram sells Stars at a fixed price, so the Stars rate is not fetched.
    stars_usd_rate: Decimal = STARS_USD_RATE

    ton_rate_ttl_seconds: float = 300
    floor_price_ttl_seconds: float = 3600
    rate_fetch_timeout_seconds: float = 5
    floor_fetch_timeout_seconds: float = 10
    binance_ton_url: str = "https://api.binance.com/api/v3/ticker/price?symbol=TONUSDT"
    okx_ton_url: str = "https://www.okx.com/api/v5/market/ticker?instId=TON-USDT"
    floor_prices_url: str = "https://giftasset.pro/api/v1/gifts/get_gifts_collections_marketcap"

    max_import_rows: int = 500
    max_import_file_size: int = 1_000_000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
