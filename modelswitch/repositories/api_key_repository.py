"""
提供商 API Key Repository

约定：
- Repository 不负责 commit()；事务由 get_db 的依赖统一处理
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.api_key import ProviderApiKey
from modelswitch.models.model_provider import ModelProvider


class ProviderApiKeyRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_user_id(self, user_id: int) -> Sequence[ProviderApiKey]:
        result = await self.db.execute(
            select(ProviderApiKey)
            .where(ProviderApiKey.user_id == user_id)
            .order_by(ProviderApiKey.id.asc())
        )
        return result.scalars().all()

    async def get_by_user_and_provider_id(self, user_id: int, provider_id: int) -> Optional[ProviderApiKey]:
        result = await self.db.execute(
            select(ProviderApiKey).where(
                ProviderApiKey.user_id == user_id,
                ProviderApiKey.provider_id == provider_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_user_and_provider_code(self, user_id: int, provider_code: str) -> Optional[ProviderApiKey]:
        result = await self.db.execute(
            select(ProviderApiKey)
            .join(ModelProvider, ModelProvider.id == ProviderApiKey.provider_id)
            .where(ProviderApiKey.user_id == user_id, ModelProvider.code == provider_code)
        )
        return result.scalar_one_or_none()

    async def exists(self, user_id: int, provider_id: int) -> bool:
        result = await self.db.execute(
            select(func.count(ProviderApiKey.id)).where(
                ProviderApiKey.user_id == user_id,
                ProviderApiKey.provider_id == provider_id,
            )
        )
        return int(result.scalar() or 0) > 0

    async def upsert(
        self,
        *,
        user_id: int,
        provider_id: int,
        encrypted_key: str,
        key_hint: str,
    ) -> ProviderApiKey:
        existing = await self.get_by_user_and_provider_id(user_id, provider_id)
        if existing is None:
            existing = ProviderApiKey(user_id=user_id, provider_id=provider_id)
            self.db.add(existing)
        existing.encrypted_key = encrypted_key
        existing.key_hint = key_hint
        existing.is_valid = True
        await self.db.flush()
        await self.db.refresh(existing)
        return existing

    async def touch_last_used(self, user_id: int, provider_id: int, used_at: datetime) -> bool:
        result = await self.db.execute(
            update(ProviderApiKey)
            .where(
                ProviderApiKey.user_id == user_id,
                ProviderApiKey.provider_id == provider_id,
            )
            .values(last_used_at=used_at)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0

    async def delete(self, user_id: int, provider_id: int) -> bool:
        result = await self.db.execute(
            delete(ProviderApiKey).where(
                ProviderApiKey.user_id == user_id,
                ProviderApiKey.provider_id == provider_id,
            )
        )
        await self.db.flush()
        return (result.rowcount or 0) > 0
