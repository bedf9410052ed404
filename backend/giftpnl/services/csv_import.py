from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.core.config import Settings, get_settings
from giftpnl.core.currency import InvalidCurrencyInput, NativeAmount, parse_amount, raw_amount_string
from giftpnl.models import ImportBatch, ImportStatus, Marketplace, Trade, TradeCurrency
from giftpnl.services.gift_parser import gift_telegram_url
from giftpnl.services.user_settings import get_user_settings, locked_commission

logger = logging.getLogger(__name__)

MAX_IMPORT_ROWS = 500
MAX_FILE_SIZE = 1_000_000
MAX_QUANTITY = 9999
MAX_GIFT_NAME_LENGTH = 200

CSV_HEADERS = (
    "Gift Name",
    "Gift Number",
    "Quantity",
    "Buy Date",
    "Sell Date",
    "Currency",
    "Buy Price",
    "Sell Price",
    "Buy Marketplace",
    "Sell Marketplace",
)
EXPECTED_HEADERS = tuple(header.lower() for header in CSV_HEADERS)


class ImportValidationError(Exception):
    def __init__(self, message: str, row_number: int | None = None) -> None:
        if row_number is not None:
            super().__init__(f"Row {row_number}: {message}")
        else:
            super().__init__(message)


class RowValidationError(Exception):
    """All problems found in a single CSV row."""

    def __init__(self, row_number: int, messages: list[str]) -> None:
        self.row_number = row_number
        self.messages = list(messages)
        super().__init__(f"Row {row_number}: {'; '.join(self.messages)}")


@dataclass
class CsvImportRow:
    row_number: int
    gift_name: str
    gift_number: int | None
    quantity: int
    buy_date: date
    sell_date: date | None
    trade_currency: TradeCurrency
    buy_price: NativeAmount
    sell_price: NativeAmount | None
    buy_marketplace: Marketplace | None
    sell_marketplace: Marketplace | None

    @property
    def gift_slug(self) -> str:
        name = self.gift_name.replace(" ", "")
        return f"{name}-{self.gift_number}" if self.gift_number is not None else name


@dataclass
class CsvParseResult:
    rows: list[CsvImportRow] = field(default_factory=list)
    errors: list[RowValidationError] = field(default_factory=list)

    @property
    def valid_count(self) -> int:
        return len(self.rows)

    @property
    def error_count(self) -> int:
        return len(self.errors)


def _parse_iso_date(value: str) -> date | None:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def _parse_marketplace(value: str, label: str, errors: list[str]) -> Marketplace | None:
    if not value:
        return None
    try:
        return Marketplace(value.lower())
    except ValueError:
        errors.append(f"Invalid {label} Marketplace: {value.lower()}")
        return None


def _parse_price(currency: TradeCurrency, value: str, label: str, errors: list[str]) -> NativeAmount | None:
    try:
        return parse_amount(currency, value)
    except InvalidCurrencyInput:
        errors.append(f"{label} is invalid")
        return None


def _normalize_row(cells: list[str], columns: dict[str, int], row_number: int) -> CsvImportRow:
    errors: list[str] = []

    def get(name: str) -> str:
        index = columns[name]
        return cells[index].strip() if index < len(cells) else ""

    gift_name = get("gift name")
    if not gift_name:
        errors.append("Gift Name is required")
    elif len(gift_name) > MAX_GIFT_NAME_LENGTH:
        errors.append(f"Gift Name must be at most {MAX_GIFT_NAME_LENGTH} characters")

    gift_number = None
    gift_number_raw = get("gift number")
    if gift_number_raw:
        if gift_number_raw.isascii() and gift_number_raw.isdigit():
            gift_number = int(gift_number_raw)
        else:
            errors.append("Gift Number must be a positive integer")

    quantity = 1
    quantity_raw = get("quantity")
    if quantity_raw:
        if not (quantity_raw.isascii() and quantity_raw.isdigit()):
            errors.append("Quantity must be a whole number")
        else:
            quantity = int(quantity_raw)
            if not 1 <= quantity <= MAX_QUANTITY:
                errors.append(f"Quantity must be 1-{MAX_QUANTITY}")

    currency = None
    currency_raw = get("currency").upper()
    try:
        currency = TradeCurrency(currency_raw)
    except ValueError:
        errors.append("Currency must be STARS or TON")

    buy_date = None
    buy_date_raw = get("buy date")
    if not buy_date_raw:
        errors.append("Buy Date is required")
    else:
        buy_date = _parse_iso_date(buy_date_raw)
        if buy_date is None:
            errors.append("Buy Date is invalid (use YYYY-MM-DD)")

    sell_date = None
    sell_date_raw = get("sell date")
    if sell_date_raw:
        sell_date = _parse_iso_date(sell_date_raw)
        if sell_date is None:
            errors.append("Sell Date is invalid (use YYYY-MM-DD)")

    buy_price = None
    buy_price_raw = get("buy price")
    if not buy_price_raw:
        errors.append("Buy Price is required")
    elif currency is not None:
        buy_price = _parse_price(currency, buy_price_raw, "Buy Price", errors)

    sell_price = None
    sell_price_raw = get("sell price")
    if sell_price_raw and currency is not None:
        sell_price = _parse_price(currency, sell_price_raw, "Sell Price", errors)

    if sell_date_raw and not sell_price_raw:
        errors.append("Sell Price required when Sell Date is set")
    if sell_price_raw and not sell_date_raw:
        errors.append("Sell Date required when Sell Price is set")
    if sell_date and buy_date and sell_date < buy_date:
        errors.append("Sell Date cannot be before Buy Date")

    buy_marketplace = _parse_marketplace(get("buy marketplace"), "Buy", errors)
    sell_marketplace = _parse_marketplace(get("sell marketplace"), "Sell", errors)

    if errors:
        raise RowValidationError(row_number, errors)

    return CsvImportRow(
        row_number=row_number,
        gift_name=gift_name,
        gift_number=gift_number,
        quantity=quantity,
        buy_date=buy_date,
        sell_date=sell_date,
        trade_currency=currency,
        buy_price=buy_price,
        sell_price=sell_price,
        buy_marketplace=buy_marketplace,
        sell_marketplace=sell_marketplace,
    )


def parse_trades_csv(
    content: str | bytes,
    max_rows: int = MAX_IMPORT_ROWS,
    max_file_size: int = MAX_FILE_SIZE,
) -> CsvParseResult:
    """
    Validate exported-format CSV text row by row.
    File level problems raise ImportValidationError; row problems are
    collected in the result so valid rows can still be imported.
    """
    if isinstance(content, bytes):
        if len(content) > max_file_size:
            raise ImportValidationError(f"File too large. Maximum is {max_file_size} bytes.")
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportValidationError("File must be UTF-8 encoded") from exc
    else:
        if len(content.encode("utf-8")) > max_file_size:
            raise ImportValidationError(f"File too large. Maximum is {max_file_size} bytes.")
        content = content.removeprefix("\ufeff")

    reader = csv.reader(io.StringIO(content, newline=""))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        raise ImportValidationError("CSV file is empty")

    header = [cell.strip().lower() for cell in rows[0]]
    missing = [name for name in EXPECTED_HEADERS if name not in header]
    if missing:
        raise ImportValidationError(f"Missing columns: {', '.join(missing)}")
    columns = {name: header.index(name) for name in EXPECTED_HEADERS}

    data_rows = rows[1:]
    if len(data_rows) > max_rows:
        raise ImportValidationError(f"Too many rows ({len(data_rows)}). Maximum is {max_rows}.")

    result = CsvParseResult()
    for idx, cells in enumerate(data_rows, start=2):  # account for header line
        try:
            result.rows.append(_normalize_row(cells, columns, idx))
        except RowValidationError as exc:
            result.errors.append(exc)
    return result


def export_trades_csv(trades: Iterable[Trade]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for trade in trades:
        writer.writerow(
            [
                trade.gift_name,
                trade.gift_number if trade.gift_number is not None else "",
                trade.quantity,
                trade.buy_date.isoformat(),
                trade.sell_date.isoformat() if trade.sell_date else "",
                trade.trade_currency.value,
                raw_amount_string(trade.trade_currency, trade.buy_price),
                raw_amount_string(trade.trade_currency, trade.sell_price) if trade.sell_price is not None else "",
                trade.buy_marketplace.value if trade.buy_marketplace else "",
                trade.sell_marketplace.value if trade.sell_marketplace else "",
            ]
        )
    return buffer.getvalue()


async def _open_slugs(session: AsyncSession, slugs: set[str]) -> set[str]:
    if not slugs:
        return set()
    result = await session.execute(
        select(Trade.gift_slug).where(
            Trade.gift_slug.in_(slugs),
            Trade.sell_price.is_(None),
            Trade.deleted_at.is_(None),
        )
    )
    return {row[0] for row in result.fetchall()}


async def import_trades_csv(
    session: AsyncSession,
    file_bytes: bytes,
    filename: str,
    settings: Settings | None = None,
) -> ImportBatch:
    settings = settings or get_settings()
    parsed = parse_trades_csv(
        file_bytes,
        max_rows=settings.max_import_rows,
        max_file_size=settings.max_import_file_size,
    )
    for error in parsed.errors:
        logger.warning("Skipping invalid row in %s: %s", filename, error)

    if not parsed.rows:
        if parsed.errors:
            details = "; ".join(str(error) for error in parsed.errors[:5])
            raise ImportValidationError(f"No valid trade rows found in file. {details}")
        raise ImportValidationError("No trade rows found in file")

    # Only one open position per gift: skip rows that would duplicate one.
    open_rows = [row for row in parsed.rows if row.sell_price is None]
    taken = await _open_slugs(session, {row.gift_slug for row in open_rows})
    duplicates = 0

    user_setting = await get_user_settings(session)
    batch = ImportBatch(
        filename=filename,
        status=ImportStatus.PENDING,
        skipped_records=len(parsed.errors),
    )
    session.add(batch)
    await session.flush()

    imported = 0
    for row in parsed.rows:
        if row.sell_price is None:
            if row.gift_slug in taken:
                duplicates += 1
                continue
            taken.add(row.gift_slug)

        flat, permille = locked_commission(user_setting, row.trade_currency)
        # Historical TON rates are unknown; Stars have a fixed price.
        stars_rate = settings.stars_usd_rate if row.trade_currency == TradeCurrency.STARS else None
        session.add(
            Trade(
                gift_link=gift_telegram_url(row.gift_slug) if row.gift_number is not None else None,
                gift_slug=row.gift_slug,
                gift_name=row.gift_name,
                gift_number=row.gift_number,
                trade_currency=row.trade_currency,
                buy_price=int(row.buy_price),
                sell_price=int(row.sell_price) if row.sell_price is not None else None,
                quantity=row.quantity,
                buy_date=row.buy_date,
                sell_date=row.sell_date,
                commission_flat_stars=flat,
                commission_permille=permille,
                buy_rate_usd=stars_rate,
                sell_rate_usd=stars_rate if row.sell_price is not None else None,
                buy_marketplace=row.buy_marketplace,
                sell_marketplace=row.sell_marketplace,
                exclude_from_pnl=False,
                import_batch_id=batch.id,
            )
        )
        imported += 1

    if duplicates:
        logger.warning("Skipped %d duplicate open positions in %s", duplicates, filename)

    batch.total_records = imported
    batch.skipped_records = len(parsed.errors) + duplicates
    batch.status = ImportStatus.COMPLETED
    batch.completed_at = datetime.utcnow()
    await session.flush()
    return batch
