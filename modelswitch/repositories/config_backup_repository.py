"""
配置备份 Repository

约定：
- Repository 不负责 commit()；事务由 get_db 的依赖统一处理
- 列表按创建时间倒序；同一时刻创建的备份再按 id 倒序，保证顺序稳定
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.config_backup import ConfigBackup


class ConfigBackupRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, backup_id: int) -> Optional[ConfigBackup]:
        result = await self.db.execute(select(ConfigBackup).where(ConfigBackup.id == backup_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        user_id: int,
        provider_id: Optional[int],
        provider_code: str,
        provider_name: str,
        backup_name: str,
        config_content: Dict[str, Any],
        backup_type: str,
    ) -> ConfigBackup:
        backup = ConfigBackup(
            user_id=user_id,
            provider_id=provider_id,
            provider_code=provider_code,
            provider_name=provider_name,
            backup_name=backup_name,
            config_content=config_content,
            backup_type=backup_type,
        )
        self.db.add(backup)
        await self.db.flush()
        await self.db.refresh(backup)
        return backup

    async def list_by_user_id(self, *, user_id: int, limit: int = 20, offset: int = 0) -> List[ConfigBackup]:
        stmt = (
            select(ConfigBackup)
            .where(ConfigBackup.user_id == user_id)
            .order_by(ConfigBackup.created_at.desc(), ConfigBackup.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(ConfigBackup.id)).where(ConfigBackup.user_id == user_id)
        )
        return int(result.scalar() or 0)
