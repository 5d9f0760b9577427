"""
切换历史 Repository
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.switch_history import SwitchHistory


class SwitchHistoryRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        user_id: int,
        from_provider_id: Optional[int],
        to_provider_id: int,
        switch_type: str,
        success: bool,
        ai_prompt: Optional[str] = None,
        error_message: Optional[str] = None,
        client_info: Optional[str] = None,
    ) -> SwitchHistory:
        history = SwitchHistory(
            user_id=user_id,
            from_provider_id=from_provider_id,
            to_provider_id=to_provider_id,
            switch_type=switch_type,
            ai_prompt=ai_prompt,
            success=success,
            error_message=error_message,
            client_info=client_info,
        )
        self.db.add(history)
        await self.db.flush()
        await self.db.refresh(history)
        return history

    async def list_by_user_id(self, *, user_id: int, limit: int = 20, offset: int = 0) -> List[SwitchHistory]:
        stmt = (
            select(SwitchHistory)
            .where(SwitchHistory.user_id == user_id)
            .order_by(SwitchHistory.created_at.desc(), SwitchHistory.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(SwitchHistory.id)).where(SwitchHistory.user_id == user_id)
        )
        return int(result.scalar() or 0)
