"""
AI 对话记录 Repository
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.models.ai_conversation import AiConversation


class AiConversationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_message(self, *, user_id: int, session_id: str, role: str, content: str) -> AiConversation:
        message = AiConversation(user_id=user_id, session_id=session_id, role=role, content=content)
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message)
        return message

    async def get_latest(self, user_id: int) -> Optional[AiConversation]:
        result = await self.db.execute(
            select(AiConversation)
            .where(AiConversation.user_id == user_id)
            .order_by(AiConversation.created_at.desc(), AiConversation.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_session(self, user_id: int, session_id: str) -> List[AiConversation]:
        result = await self.db.execute(
            select(AiConversation)
            .where(AiConversation.user_id == user_id, AiConversation.session_id == session_id)
            .order_by(AiConversation.created_at.asc(), AiConversation.id.asc())
        )
        return list(result.scalars().all())
