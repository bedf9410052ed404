from __future__ import annotations

from enum import Enum as PyEnum


class TradeCurrency(str, PyEnum):
    STARS = "STARS"
    TON = "TON"


class Marketplace(str, PyEnum):
    FRAGMENT = "fragment"
    GETGEMS = "getgems"
    TONKEEPER = "tonkeeper"
    P2P = "p2p"
    OTHER = "other"
