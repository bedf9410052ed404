from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from giftpnl.db.base import Base
from giftpnl.models.enums import Marketplace, TradeCurrency
from giftpnl.models.import_batch import ImportBatch

MarketplaceType = Enum(Marketplace, name="marketplace")


class Trade(Base):
    __tablename__ = "trades"
    __table_args__ = (
        CheckConstraint("buy_price >= 0", name="chk_buy_price_nonneg"),
        CheckConstraint("sell_price IS NULL OR sell_price >= 0", name="chk_sell_price_nonneg"),
        CheckConstraint("commission_flat_stars >= 0", name="chk_commission_flat_nonneg"),
        CheckConstraint(
            "commission_permille >= 0 AND commission_permille <= 1000", name="chk_commission_permille_range"
        ),
        CheckConstraint("quantity >= 1 AND quantity <= 9999", name="chk_quantity_range"),
        CheckConstraint("(sell_price IS NULL) = (sell_date IS NULL)", name="chk_sell_pairing"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    gift_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    gift_slug: Mapped[str] = mapped_column(String(200), index=True)
    gift_name: Mapped[str] = mapped_column(String(200))
    gift_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    trade_currency: Mapped[TradeCurrency] = mapped_column(Enum(TradeCurrency, name="trade_currency"))
    # Stars as whole numbers, TON as nanotons.
    buy_price: Mapped[int] = mapped_column(BigInteger)
    sell_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    buy_date: Mapped[date] = mapped_column(Date)
    sell_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Locked when the trade is created, not joined from user settings.
    commission_flat_stars: Mapped[int] = mapped_column(BigInteger, default=0)
    commission_permille: Mapped[int] = mapped_column(Integer, default=0)

    # Locked at buy/sell time, NULL when the rate was unavailable.
    buy_rate_usd: Mapped[Decimal | None] = mapped_column(Numeric(12, 8), nullable=True)
    sell_rate_usd: Mapped[Decimal | None] = mapped_column(Numeric(12, 8), nullable=True)

    buy_marketplace: Mapped[Marketplace | None] = mapped_column(MarketplaceType, nullable=True)
    sell_marketplace: Mapped[Marketplace | None] = mapped_column(MarketplaceType, nullable=True)

    exclude_from_pnl: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    import_batch_id: Mapped[int | None] = mapped_column(ForeignKey("import_batches.id"), nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    import_batch: Mapped[ImportBatch | None] = relationship(back_populates="trades")

    @property
    def is_open(self) -> bool:
        return self.sell_price is None
