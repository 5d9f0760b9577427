"""
模型提供商 Repository

约定：
- Repository 不负责 commit()；事务由 get_db 的依赖统一处理
"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.model_provider import ModelProvider


class ModelProviderRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, provider_id: int) -> Optional[ModelProvider]:
        result = await self.db.execute(select(ModelProvider).where(ModelProvider.id == provider_id))
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[ModelProvider]:
        result = await self.db.execute(select(ModelProvider).where(ModelProvider.code == code))
        return result.scalar_one_or_none()

    async def exists_by_code(self, code: str) -> bool:
        result = await self.db.execute(
            select(func.count(ModelProvider.id)).where(ModelProvider.code == code)
        )
        return int(result.scalar() or 0) > 0

    async def list_active(self) -> Sequence[ModelProvider]:
        result = await self.db.execute(
            select(ModelProvider)
            .where(ModelProvider.is_active.is_(True))
            .order_by(ModelProvider.sort_order.asc(), ModelProvider.id.asc())
        )
        return result.scalars().all()

    async def create(self, **values) -> ModelProvider:
        provider = ModelProvider(**values)
        self.db.add(provider)
        await self.db.flush()
        await self.db.refresh(provider)
        return provider

    async def save(self, provider: ModelProvider) -> ModelProvider:
        await self.db.flush()
        await self.db.refresh(provider)
        return provider
