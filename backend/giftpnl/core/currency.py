from __future__ import annotations

import re
from decimal import Decimal
from typing import ClassVar

from giftpnl.models.enums import TradeCurrency

NANOTON_DECIMALS = 9
NANOTON_MULTIPLIER = 10**NANOTON_DECIMALS

# Fixed Stars/USD price set by Telegram.
STARS_USD_RATE = Decimal("0.013")

GROUP_SEPARATOR = "\u00a0"
STARS_SYMBOL = "★"
TON_SYMBOL = "TON"

_DIGITS = re.compile(r"[0-9]+")


class InvalidCurrencyInput(ValueError):
    """Raised when user supplied amount text cannot be parsed."""


class CurrencyMismatchError(TypeError):
    """Raised when Stars and nanotons meet in one arithmetic expression."""


class NativeAmount(int):
    """Integer amount in the smallest unit of a single currency.

    Arithmetic with a plain ``int`` keeps the currency; arithmetic with an
    amount of the other currency raises :class:`CurrencyMismatchError`.
    """

    currency: ClassVar[TradeCurrency]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def _operand(self, other: int) -> int:
        if isinstance(other, NativeAmount) and type(other) is not type(self):
            raise CurrencyMismatchError(
                f"cannot combine {type(self).__name__} with {type(other).__name__}"
            )
        return int(other)

    def __add__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return type(self)(int(self) + self._operand(other))

    __radd__ = __add__

    def __sub__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return type(self)(int(self) - self._operand(other))

    def __rsub__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return type(self)(self._operand(other) - int(self))

    def __mul__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        if isinstance(other, NativeAmount):
            raise TypeError("cannot multiply two currency amounts")
        return type(self)(int(self) * int(other))

    __rmul__ = __mul__

    def __floordiv__(self, other):
        if not isinstance(other, int) or isinstance(other, NativeAmount):
            return NotImplemented
        return type(self)(int(self) // int(other))

    def __neg__(self):
        return type(self)(-int(self))

    def __abs__(self):
        return type(self)(abs(int(self)))


class Stars(NativeAmount):
    currency = TradeCurrency.STARS


class NanoTon(NativeAmount):
    currency = TradeCurrency.TON


AMOUNT_TYPES: dict[TradeCurrency, type[NativeAmount]] = {
    TradeCurrency.STARS: Stars,
    TradeCurrency.TON: NanoTon,
}


def native_amount(currency: TradeCurrency | str, value: int) -> NativeAmount:
    amount_type = AMOUNT_TYPES[TradeCurrency(currency)]
    if isinstance(value, NativeAmount) and not isinstance(value, amount_type):
        raise CurrencyMismatchError(f"{type(value).__name__} is not a {amount_type.__name__} amount")
    return amount_type(value)


def parse_stars_input(text: str) -> Stars:
    """Parse a whole number of Stars. Signs, decimals and blanks are rejected."""
    trimmed = text.strip()
    if not _DIGITS.fullmatch(trimmed):
        raise InvalidCurrencyInput("Invalid Stars input: must be a non-negative integer")
    return Stars(int(trimmed))


def parse_ton_input(text: str) -> NanoTon:
    """Parse a TON amount into nanotons without going through floats.

    "3.5" -> 3_500_000_000, "0.001" -> 1_000_000, "100" -> 100_000_000_000.
    Digits past the ninth decimal place are truncated, never rounded.
    """
    trimmed = text.strip()
    if trimmed in ("", "."):
        raise InvalidCurrencyInput("Invalid TON input: empty")

    parts = trimmed.split(".")
    if len(parts) > 2:
        raise InvalidCurrencyInput("Invalid TON input: multiple decimal points")

    whole = parts[0]
    frac = parts[1] if len(parts) == 2 else ""
    if not _DIGITS.fullmatch(whole) or (frac and not _DIGITS.fullmatch(frac)):
        raise InvalidCurrencyInput("Invalid TON input: non-numeric characters")

    frac = frac[:NANOTON_DECIMALS].ljust(NANOTON_DECIMALS, "0")
    return NanoTon(int(whole) * NANOTON_MULTIPLIER + int(frac))


def parse_amount(currency: TradeCurrency | str, text: str) -> NativeAmount:
    if TradeCurrency(currency) == TradeCurrency.TON:
        return parse_ton_input(text)
    return parse_stars_input(text)


def _split_nanotons(value: int) -> tuple[str, int, str]:
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), NANOTON_MULTIPLIER)
    return sign, whole, str(frac).rjust(NANOTON_DECIMALS, "0").rstrip("0")


def format_ton(value: int) -> str:
    """Format nanotons as "3.50 TON", keeping at least two decimals."""
    sign, whole, frac = _split_nanotons(value)
    return f"{sign}{whole}.{frac.ljust(2, '0')} {TON_SYMBOL}"


def nanoton_to_ton_string(value: int) -> str:
    """Plain TON number without suffix or padding: "5", "3.5", "-0.000000001"."""
    sign, whole, frac = _split_nanotons(value)
    if not frac:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac}"


def format_stars(value: int) -> str:
    """Format Stars as "1 234 567 ★" using a non-breaking group separator."""
    sign = "-" if value < 0 else ""
    grouped = f"{abs(int(value)):,}".replace(",", GROUP_SEPARATOR)
    return f"{sign}{grouped} {STARS_SYMBOL}"


def format_amount(currency: TradeCurrency | str, value: int) -> str:
    if TradeCurrency(currency) == TradeCurrency.TON:
        return format_ton(value)
    return format_stars(value)


def raw_amount_string(currency: TradeCurrency | str, value: int) -> str:
    if TradeCurrency(currency) == TradeCurrency.TON:
        return nanoton_to_ton_string(value)
    return str(int(value))
