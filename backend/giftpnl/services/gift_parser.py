from __future__ import annotations

import re
from dataclasses import dataclass

_URL_PATTERN = re.compile(r"(?:https?://)?t\.me/nft/(.+)")
_SLUG_PATTERN = re.compile(r"[A-Za-z][\w-]*-\d+")


@dataclass(frozen=True)
class ParsedGift:
    name: str
    number: int
    slug: str
    display_name: str
    name_lower: str


def _display_name(name: str) -> str:
    # "PlushPepe" -> "Plush Pepe", "Jelly-Fish" -> "Jelly Fish", "NFTCard" -> "NFT Card"
    text = name.replace("-", " ")
    text = re.sub(r"([a-z\d])([A-Z])", r"\1 \2", text)
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", text)
    return text.strip()


def parse_gift_url(value: str) -> ParsedGift | None:
    """
    Parse a Telegram gift link (t.me/nft/PlushPepe-123) or a bare slug.
    Gift names may contain hyphens, so the number is taken after the last one.
    Returns None for anything that is not a gift reference.
    """
    trimmed = value.strip()
    match = _URL_PATTERN.search(trimmed)
    if match:
        slug = match.group(1)
    elif _SLUG_PATTERN.fullmatch(trimmed):
        slug = trimmed
    else:
        return None

    name, sep, number_text = slug.rpartition("-")
    if not sep or not name:
        return None
    if not number_text.isascii() or not number_text.isdigit():
        return None
    number = int(number_text)
    if number <= 0 or not name[0].isupper() or not name[0].isascii():
        return None

    return ParsedGift(
        name=name,
        number=number,
        slug=f"{name}-{number}",
        display_name=_display_name(name),
        name_lower=name.lower(),
    )


def gift_telegram_url(slug: str) -> str:
    return f"https://t.me/nft/{slug}"


def gift_image_url(name_lower: str, number: int) -> str:
    return f"https://nft.fragment.com/gift/{name_lower}-{number}.webp"
