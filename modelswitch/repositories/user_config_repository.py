"""
用户配置 Repository

约定：
- Repository 不负责 commit()；事务由 get_db 的依赖统一处理
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.model_provider import ModelProvider
from modelswitch.models.user_config import DEFAULT_API_TIMEOUT_MS, UserConfig


class UserConfigRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_user_id(self, user_id: int) -> Optional[UserConfig]:
        result = await self.db.execute(select(UserConfig).where(UserConfig.user_id == user_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        user_id: int,
        provider: ModelProvider,
        api_timeout: int = DEFAULT_API_TIMEOUT_MS,
        extra_config: Optional[Dict[str, Any]] = None,
    ) -> UserConfig:
        config = UserConfig(
            user_id=user_id,
            current_provider=provider,
            api_timeout=api_timeout,
            extra_config=extra_config,
        )
        self.db.add(config)
        await self.db.flush()
        await self.db.refresh(config)
        return config

    async def save(self, config: UserConfig) -> UserConfig:
        await self.db.flush()
        await self.db.refresh(config)
        return config
