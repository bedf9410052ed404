from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from giftpnl.api.deps import get_db
from giftpnl.schemas.settings import SettingsRead, SettingsUpdate
from giftpnl.services.user_settings import get_user_settings

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingsRead)
async def read_settings(db: AsyncSession = Depends(get_db)) -> SettingsRead:
    setting = await get_user_settings(db)
    await db.commit()
    return SettingsRead.model_validate(setting)


@router.patch("", response_model=SettingsRead)
async def update_settings(
    payload: SettingsUpdate,
    db: AsyncSession = Depends(get_db),
) -> SettingsRead:
    setting = await get_user_settings(db)
    if payload.default_commission_stars is not None:
        setting.default_commission_stars = payload.default_commission_stars
    if payload.default_commission_permille is not None:
        setting.default_commission_permille = payload.default_commission_permille
    if payload.default_currency is not None:
        setting.default_currency = payload.default_currency
    if payload.timezone is not None:
        setting.timezone = payload.timezone
    await db.commit()
    await db.refresh(setting)
    return SettingsRead.model_validate(setting)
