from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from giftpnl.db.base import Base
from giftpnl.models.enums import TradeCurrency


class UserSetting(Base):
    __tablename__ = "user_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    default_commission_stars: Mapped[int] = mapped_column(BigInteger, default=0)
    default_commission_permille: Mapped[int] = mapped_column(Integer, default=0)
    default_currency: Mapped[TradeCurrency] = mapped_column(
        Enum(TradeCurrency, name="trade_currency"), default=TradeCurrency.STARS
    )
    timezone: Mapped[str] = mapped_column(String(50), default="UTC")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
