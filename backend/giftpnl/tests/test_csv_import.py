from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from giftpnl.models import ImportBatch, Marketplace, Trade, TradeCurrency
from giftpnl.services.csv_import import (
    CSV_HEADERS,
    ImportValidationError,
    export_trades_csv,
    import_trades_csv,
    parse_trades_csv,
)

HEADER = ",".join(CSV_HEADERS)


def _csv(*rows: str) -> str:
    return "\n".join((HEADER, *rows)) + "\n"


def test_parse_collects_valid_rows_and_errors(trades_csv_bytes) -> None:
    result = parse_trades_csv(trades_csv_bytes)

    assert result.valid_count == 2
    assert result.error_count == 2

    pepe, jelly = result.rows
    assert pepe.row_number == 2
    assert pepe.gift_slug == "PlushPepe-123"
    assert pepe.trade_currency == TradeCurrency.STARS
    assert pepe.buy_price == 1000
    assert pepe.sell_price == 1500
    assert pepe.sell_date == date(2024, 1, 5)
    assert pepe.buy_marketplace == Marketplace.FRAGMENT
    assert pepe.sell_marketplace == Marketplace.GETGEMS

    assert jelly.trade_currency == TradeCurrency.TON
    assert jelly.buy_price == 3_500_000_000
    assert jelly.quantity == 2
    assert jelly.sell_price is None

    broken = result.errors[0]
    assert broken.row_number == 4
    assert "Quantity must be a whole number" in broken.messages
    assert "Currency must be STARS or TON" in broken.messages
    assert "Buy Price is required" in broken.messages
    assert str(broken).startswith("Row 4: ")

    assert result.errors[1].messages == ["Sell Date cannot be before Buy Date"]


def test_headers_are_case_insensitive_and_any_order() -> None:
    content = (
        "currency,BUY PRICE,gift name,buy date,gift number,quantity,sell date,sell price,buy marketplace,sell marketplace\n"
        "stars,250,Lol Pop,2024-05-01,,,,,,\n"
    )
    result = parse_trades_csv(content)
    assert result.error_count == 0
    row = result.rows[0]
    assert row.gift_name == "Lol Pop"
    assert row.gift_slug == "LolPop"
    assert row.quantity == 1
    assert row.buy_price == 250


def test_byte_order_mark_is_ignored() -> None:
    content = ("\ufeff" + _csv("PlushPepe,1,1,2024-01-01,,STARS,10,,,")).encode("utf-8")
    assert parse_trades_csv(content).valid_count == 1


@pytest.mark.parametrize(
    ("row", "message"),
    [
        ("PlushPepe,1,0,2024-01-01,,STARS,10,,,", "Quantity must be 1-9999"),
        ("PlushPepe,1,10000,2024-01-01,,STARS,10,,,", "Quantity must be 1-9999"),
        (",1,1,2024-01-01,,STARS,10,,,", "Gift Name is required"),
        ("PlushPepe,1,1,,,STARS,10,,,", "Buy Date is required"),
        ("PlushPepe,1,1,01/02/2024,,STARS,10,,,", "Buy Date is invalid (use YYYY-MM-DD)"),
        ("PlushPepe,1,1,2024-01-01,,STARS,1.5,,,", "Buy Price is invalid"),
        ("PlushPepe,1,1,2024-01-01,2024-01-02,STARS,10,,,", "Sell Price required when Sell Date is set"),
        ("PlushPepe,1,1,2024-01-01,,STARS,10,20,,", "Sell Date required when Sell Price is set"),
        ("PlushPepe,1,1,2024-01-01,,STARS,10,,ebay,", "Invalid Buy Marketplace: ebay"),
        ("PlushPepe,x,1,2024-01-01,,STARS,10,,,", "Gift Number must be a positive integer"),
    ],
)
def test_row_validation_messages(row: str, message: str) -> None:
    result = parse_trades_csv(_csv(row))
    assert result.valid_count == 0
    assert message in result.errors[0].messages


def test_file_too_large() -> None:
    with pytest.raises(ImportValidationError, match="File too large"):
        parse_trades_csv(_csv("PlushPepe,1,1,2024-01-01,,STARS,10,,,").encode(), max_file_size=10)


def test_empty_file() -> None:
    with pytest.raises(ImportValidationError, match="CSV file is empty"):
        parse_trades_csv(b"\n\n")


def test_missing_columns() -> None:
    with pytest.raises(ImportValidationError, match="Missing columns: .*buy price"):
        parse_trades_csv("Gift Name,Buy Date\nPlushPepe,2024-01-01\n")


def test_too_many_rows() -> None:
    content = _csv("A,1,1,2024-01-01,,STARS,1,,,", "B,2,1,2024-01-01,,STARS,1,,,")
    with pytest.raises(ImportValidationError, match=r"Too many rows \(2\)\. Maximum is 1\."):
        parse_trades_csv(content, max_rows=1)


def test_non_utf8_file() -> None:
    with pytest.raises(ImportValidationError, match="UTF-8"):
        parse_trades_csv(b"\xff\xfe\x00bad")


def test_export_writes_plain_amounts() -> None:
    trades = [
        Trade(
            gift_name="PlushPepe",
            gift_slug="PlushPepe-123",
            gift_number=123,
            trade_currency=TradeCurrency.TON,
            buy_price=3_500_000_000,
            sell_price=5_000_000_000,
            quantity=1,
            buy_date=date(2024, 1, 1),
            sell_date=date(2024, 1, 5),
            buy_marketplace=Marketplace.FRAGMENT,
            sell_marketplace=None,
        ),
        Trade(
            gift_name="Lol Pop",
            gift_slug="LolPop",
            gift_number=None,
            trade_currency=TradeCurrency.STARS,
            buy_price=1500,
            sell_price=None,
            quantity=3,
            buy_date=date(2024, 2, 1),
            sell_date=None,
        ),
    ]
    lines = export_trades_csv(trades).splitlines()
    assert lines[0] == HEADER
    assert lines[1] == "PlushPepe,123,1,2024-01-01,2024-01-05,TON,3.5,5,fragment,"
    assert lines[2] == "Lol Pop,,3,2024-02-01,,STARS,1500,,,"

    reparsed = parse_trades_csv(export_trades_csv(trades))
    assert reparsed.error_count == 0
    assert [row.buy_price for row in reparsed.rows] == [3_500_000_000, 1500]


@pytest.mark.asyncio
async def test_import_trades_csv(async_session, trades_csv_bytes) -> None:
    batch = await import_trades_csv(async_session, trades_csv_bytes, "trades.csv")
    await async_session.commit()

    assert batch.status.name == "COMPLETED"
    assert batch.total_records == 2
    assert batch.skipped_records == 2
    assert batch.completed_at is not None

    result = await async_session.execute(select(Trade).order_by(Trade.id))
    trades = result.scalars().all()
    assert [trade.gift_slug for trade in trades] == ["PlushPepe-123", "JellyFish-7"]
    assert all(trade.import_batch_id == batch.id for trade in trades)

    pepe, jelly = trades
    assert pepe.buy_rate_usd == Decimal("0.013")
    assert pepe.sell_rate_usd == Decimal("0.013")
    assert jelly.buy_rate_usd is None
    assert jelly.commission_flat_stars == 0
    assert jelly.gift_link == "https://t.me/nft/JellyFish-7"
    assert jelly.quantity == 2


@pytest.mark.asyncio
async def test_import_skips_duplicate_open_positions(async_session, trades_csv_bytes) -> None:
    await import_trades_csv(async_session, trades_csv_bytes, "first.csv")
    second = await import_trades_csv(async_session, trades_csv_bytes, "second.csv")
    await async_session.commit()

    assert second.total_records == 1
    assert second.skipped_records == 3

    batches = (await async_session.execute(select(ImportBatch))).scalars().all()
    assert len(batches) == 2
    open_jelly = await async_session.execute(
        select(Trade).where(Trade.gift_slug == "JellyFish-7", Trade.sell_price.is_(None))
    )
    assert len(open_jelly.scalars().all()) == 1


@pytest.mark.asyncio
async def test_import_without_valid_rows(async_session) -> None:
    content = _csv("PlushPepe,1,1,,,STARS,10,,,").encode()
    with pytest.raises(ImportValidationError, match="No valid trade rows found in file. Row 2: Buy Date is required"):
        await import_trades_csv(async_session, content, "bad.csv")


@pytest.mark.asyncio
async def test_import_logs_skipped_rows_as_warnings(async_session, trades_csv_bytes, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="giftpnl.services.csv_import"):
        await import_trades_csv(async_session, trades_csv_bytes, "trades.csv")

    skipped = [record for record in caplog.records if record.getMessage().startswith("Skipping invalid row")]
    assert len(skipped) == 2
    assert all(record.levelno == logging.WARNING for record in skipped)
