from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.core.config import get_settings
from giftpnl.models import TradeCurrency, UserSetting


async def get_user_settings(session: AsyncSession) -> UserSetting:
    """Return the settings row, creating it with defaults on first use."""
    result = await session.execute(select(UserSetting).order_by(UserSetting.id).limit(1))
    setting = result.scalar_one_or_none()
    if setting is None:
        setting = UserSetting(
            default_commission_stars=0,
            default_commission_permille=0,
            default_currency=TradeCurrency.STARS,
            timezone=get_settings().default_timezone,
        )
        session.add(setting)
        await session.flush()
    return setting


def locked_commission(
    setting: UserSetting,
    currency: TradeCurrency,
    flat_override: int | None = None,
    permille_override: int | None = None,
) -> tuple[int, int]:
    flat = flat_override if flat_override is not None else setting.default_commission_stars
    permille = permille_override if permille_override is not None else setting.default_commission_permille
    # The flat fee is charged in Stars and cannot apply to a TON trade.
    if currency == TradeCurrency.TON:
        flat = 0
    return int(flat), int(permille)
