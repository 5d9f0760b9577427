"""
切换历史（审计）

每次进入变更阶段的切换尝试记录一条，成功失败都记。
"""
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from modelswitch.db.base import Base


class SwitchType(str, enum.Enum):
    MANUAL = "manual"
    AI_NATURAL_LANGUAGE = "ai_natural_language"


class SwitchHistory(Base):
    """切换历史表"""

    __tablename__ = "switch_histories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # 首次切换时没有来源提供商
    from_provider_id = Column(Integer, ForeignKey("model_providers.id", ondelete="SET NULL"), nullable=True)
    to_provider_id = Column(Integer, ForeignKey("model_providers.id", ondelete="SET NULL"), nullable=True)

    switch_type = Column(String(32), default=SwitchType.MANUAL.value, nullable=False)
    ai_prompt = Column(Text, nullable=True)  # 自然语言切换时的原始输入

    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    client_info = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<SwitchHistory(id={self.id}, user_id={self.user_id}, success={self.success})>"
