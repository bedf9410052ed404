from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from giftpnl.models.enums import TradeCurrency
from giftpnl.schemas.types import AmountStr


class SettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    default_commission_stars: AmountStr = 0
    default_commission_permille: int = 0
    default_currency: TradeCurrency = TradeCurrency.STARS
    timezone: str = Field(default="UTC")


class SettingsUpdate(BaseModel):
    default_commission_stars: int | None = Field(default=None, ge=0)
    default_commission_permille: int | None = Field(default=None, ge=0, le=1000)
    default_currency: TradeCurrency | None = None
    timezone: str | None = Field(default=None, max_length=50)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError("Invalid IANA timezone") from exc
        return value
