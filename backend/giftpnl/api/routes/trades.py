from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.api.deps import get_db, get_market_data
from giftpnl.core.currency import InvalidCurrencyInput, NativeAmount, format_amount, parse_amount
from giftpnl.models import Trade, TradeCurrency
from giftpnl.schemas.trade import ProfitRead, TradeCreate, TradePage, TradeRead, TradeUpdate
from giftpnl.services.csv_import import export_trades_csv
from giftpnl.services.gift_parser import gift_image_url, gift_telegram_url, parse_gift_url
from giftpnl.services.market_data import MarketDataService
from giftpnl.services.trade_profits import trade_profit
from giftpnl.services.user_settings import get_user_settings, locked_commission

router = APIRouter(prefix="/api/trades", tags=["trades"])

logger = logging.getLogger(__name__)

# Nullable sort columns sort their missing values as the lowest value.
SORT_KEYS = {
    "buy_date": (Trade.buy_date, None),
    "sell_date": (Trade.sell_date, date.min),
    "buy_price": (Trade.buy_price, None),
    "sell_price": (Trade.sell_price, -1),
    "created_at": (Trade.created_at, None),
}


def _serialize_trade(trade: Trade) -> TradeRead:
    profit = trade_profit(trade)
    # Imported rows without a gift number have no parseable slug.
    gift = parse_gift_url(trade.gift_slug)
    return TradeRead(
        id=trade.id,
        gift_link=trade.gift_link,
        gift_slug=trade.gift_slug,
        gift_name=trade.gift_name,
        gift_number=trade.gift_number,
        display_name=gift.display_name if gift is not None else trade.gift_name,
        image_url=gift_image_url(gift.name_lower, gift.number) if gift is not None else None,
        trade_currency=trade.trade_currency,
        buy_price=trade.buy_price,
        sell_price=trade.sell_price,
        buy_price_display=format_amount(trade.trade_currency, trade.buy_price),
        sell_price_display=(
            format_amount(trade.trade_currency, trade.sell_price) if trade.sell_price is not None else None
        ),
        quantity=trade.quantity,
        buy_date=trade.buy_date,
        sell_date=trade.sell_date,
        commission_flat_stars=trade.commission_flat_stars,
        commission_permille=trade.commission_permille,
        buy_rate_usd=str(trade.buy_rate_usd) if trade.buy_rate_usd is not None else None,
        sell_rate_usd=str(trade.sell_rate_usd) if trade.sell_rate_usd is not None else None,
        buy_marketplace=trade.buy_marketplace,
        sell_marketplace=trade.sell_marketplace,
        exclude_from_pnl=trade.exclude_from_pnl,
        notes=trade.notes,
        deleted_at=trade.deleted_at,
        created_at=trade.created_at,
        profit=ProfitRead(
            net_profit=profit.net_profit,
            gross_profit=profit.gross_profit,
            total_commission=profit.total_commission,
            buy_value_usd=profit.buy_value_usd,
            sell_value_usd=profit.sell_value_usd,
            net_profit_usd=profit.net_profit_usd,
            profit_percent=profit.profit_percent,
        ),
    )


def _parse_price(currency: TradeCurrency, value: str | None) -> NativeAmount | None:
    if value is None:
        return None
    try:
        return parse_amount(currency, value)
    except InvalidCurrencyInput as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _check_sell_fields(
    sell_price: int | None, sell_date: date | None, buy_date: date
) -> None:
    if (sell_price is None) != (sell_date is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sell price and sell date must be set together",
        )
    if sell_date is not None and sell_date < buy_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sell date cannot be before buy date")


async def _ensure_no_open_duplicate(db: AsyncSession, gift_slug: str, exclude_id: int | None = None) -> None:
    stmt = select(Trade.id).where(
        Trade.gift_slug == gift_slug,
        Trade.sell_price.is_(None),
        Trade.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Trade.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An open position for {gift_slug} already exists",
        )


async def _get_trade(db: AsyncSession, trade_id: int) -> Trade:
    trade = await db.get(Trade, trade_id)
    if trade is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")
    return trade


@router.get("", response_model=TradePage)
async def list_trades(
    cursor: int | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    sort: Literal["buy_date", "sell_date", "buy_price", "sell_price", "created_at"] = "buy_date",
    sort_dir: Literal["asc", "desc"] = "desc",
    currency: TradeCurrency | None = None,
    show_deleted: bool = False,
    db: AsyncSession = Depends(get_db),
) -> TradePage:
    column, missing = SORT_KEYS[sort]
    sort_key = column if missing is None else func.coalesce(column, missing)
    descending = sort_dir == "desc"

    conditions = []
    if not show_deleted:
        conditions.append(Trade.deleted_at.is_(None))
    if currency:
        conditions.append(Trade.trade_currency == currency)
    if cursor is not None:
        # Keyset on (sort key, id) starting after the cursor trade.
        anchor = await db.get(Trade, cursor)
        if anchor is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor")
        anchor_value = getattr(anchor, sort)
        if anchor_value is None:
            anchor_value = missing
        if descending:
            conditions.append(or_(sort_key < anchor_value, and_(sort_key == anchor_value, Trade.id < cursor)))
        else:
            conditions.append(or_(sort_key > anchor_value, and_(sort_key == anchor_value, Trade.id > cursor)))

    order = desc if descending else asc
    stmt = select(Trade).order_by(order(sort_key), order(Trade.id)).limit(limit + 1)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    result = await db.execute(stmt)
    trades = result.scalars().all()
    has_more = len(trades) > limit
    page = trades[:limit]
    next_cursor = page[-1].id if has_more and page else None
    return TradePage(data=[_serialize_trade(trade) for trade in page], next_cursor=next_cursor)


@router.get("/export", response_class=PlainTextResponse)
async def export_trades(
    currency: TradeCurrency | None = None,
    db: AsyncSession = Depends(get_db),
) -> PlainTextResponse:
    stmt = select(Trade).where(Trade.deleted_at.is_(None)).order_by(Trade.buy_date.desc(), Trade.id.desc())
    if currency:
        stmt = stmt.where(Trade.trade_currency == currency)
    result = await db.execute(stmt)
    trades = result.scalars().all()
    return PlainTextResponse(
        export_trades_csv(trades),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="trades.csv"'},
    )


@router.get("/{trade_id}", response_model=TradeRead)
async def get_trade(trade_id: int, db: AsyncSession = Depends(get_db)) -> TradeRead:
    return _serialize_trade(await _get_trade(db, trade_id))


@router.post("", response_model=TradeRead, status_code=status.HTTP_201_CREATED)
async def create_trade(
    payload: TradeCreate,
    db: AsyncSession = Depends(get_db),
    market: MarketDataService = Depends(get_market_data),
) -> TradeRead:
    gift = parse_gift_url(payload.gift_url)
    if gift is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid gift URL format")

    currency = payload.trade_currency
    buy_price = _parse_price(currency, payload.buy_price)
    sell_price = _parse_price(currency, payload.sell_price)
    _check_sell_fields(sell_price, payload.sell_date, payload.buy_date)
    if sell_price is None:
        await _ensure_no_open_duplicate(db, gift.slug)

    setting = await get_user_settings(db)
    flat, permille = locked_commission(
        setting, currency, payload.commission_flat_stars, payload.commission_permille
    )
    buy_rate = await market.lock_rate(currency)
    sell_rate = await market.lock_rate(currency) if sell_price is not None else None

    trade = Trade(
        gift_link=gift_telegram_url(gift.slug),
        gift_slug=gift.slug,
        gift_name=gift.name,
        gift_number=gift.number,
        trade_currency=currency,
        buy_price=int(buy_price),
        sell_price=int(sell_price) if sell_price is not None else None,
        quantity=payload.quantity,
        buy_date=payload.buy_date,
        sell_date=payload.sell_date,
        commission_flat_stars=flat,
        commission_permille=permille,
        buy_rate_usd=buy_rate,
        sell_rate_usd=sell_rate,
        buy_marketplace=payload.buy_marketplace,
        sell_marketplace=payload.sell_marketplace,
        exclude_from_pnl=payload.exclude_from_pnl,
        notes=payload.notes,
    )
    db.add(trade)
    await db.commit()
    await db.refresh(trade)
    logger.info("Recorded %s trade %s for %s", currency.value, trade.id, gift.slug)
    return _serialize_trade(trade)


@router.patch("/{trade_id}", response_model=TradeRead)
async def update_trade(
    trade_id: int,
    payload: TradeUpdate,
    db: AsyncSession = Depends(get_db),
    market: MarketDataService = Depends(get_market_data),
) -> TradeRead:
    trade = await _get_trade(db, trade_id)
    currency = trade.trade_currency

    sell_price = trade.sell_price
    sell_date = trade.sell_date
    if payload.sell_price is not None:
        sell_price = int(_parse_price(currency, payload.sell_price))
    if payload.sell_date is not None:
        sell_date = payload.sell_date
    _check_sell_fields(sell_price, sell_date, trade.buy_date)

    if payload.sell_date is not None:
        # The sell rate is locked when the position is closed.
        trade.sell_rate_usd = await market.lock_rate(currency)
    trade.sell_price = sell_price
    trade.sell_date = sell_date

    if payload.sell_marketplace is not None:
        trade.sell_marketplace = payload.sell_marketplace
    if payload.notes is not None:
        trade.notes = payload.notes
    if payload.exclude_from_pnl is not None:
        trade.exclude_from_pnl = payload.exclude_from_pnl
    if payload.commission_flat_stars is not None:
        trade.commission_flat_stars = payload.commission_flat_stars
    if payload.commission_permille is not None:
        trade.commission_permille = payload.commission_permille
    if currency == TradeCurrency.TON:
        trade.commission_flat_stars = 0

    trade.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(trade)
    return _serialize_trade(trade)


@router.delete("/{trade_id}")
async def soft_delete_trade(trade_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, bool]:
    trade = await db.get(Trade, trade_id)
    if trade is None or trade.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found or already deleted")
    trade.deleted_at = datetime.utcnow()
    trade.updated_at = datetime.utcnow()
    await db.commit()
    return {"success": True}


@router.post("/{trade_id}/restore")
async def restore_trade(trade_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, bool]:
    trade = await _get_trade(db, trade_id)
    if trade.deleted_at is not None and trade.is_open:
        await _ensure_no_open_duplicate(db, trade.gift_slug, exclude_id=trade.id)
    trade.deleted_at = None
    trade.updated_at = datetime.utcnow()
    await db.commit()
    return {"success": True}
