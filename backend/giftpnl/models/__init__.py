from giftpnl.models.enums import Marketplace, TradeCurrency
from giftpnl.models.import_batch import ImportBatch, ImportStatus
from giftpnl.models.trade import Trade
from giftpnl.models.user_setting import UserSetting

__all__ = [
    "ImportBatch",
    "ImportStatus",
    "Marketplace",
    "Trade",
    "TradeCurrency",
    "UserSetting",
]
