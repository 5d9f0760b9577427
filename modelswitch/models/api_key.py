"""
提供商 API Key（按用户 + 提供商落库）

说明：
- KEY 使用 Fernet 加密后落库，key_hint 仅用于展示（前4...后4）
- (user_id, provider_id) 唯一，重复设置即覆盖
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from modelswitch.db.base import Base
from modelswitch.models.model_provider import ModelProvider


class ProviderApiKey(Base):
    """提供商 API Key"""

    __tablename__ = "provider_api_keys"
    __table_args__ = (
        UniqueConstraint("user_id", "provider_id", name="uq_provider_api_keys_user_provider"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="关联的用户ID",
    )

    provider_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("model_providers.id", ondelete="CASCADE"),
        nullable=False,
        comment="关联的提供商ID",
    )

    encrypted_key: Mapped[str] = mapped_column(Text, nullable=False, comment="加密后的 API KEY")

    key_hint: Mapped[str] = mapped_column(String(32), nullable=False, comment="展示用提示")

    is_valid: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, comment="是否有效")

    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="最近一次切换使用时间",
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="过期时间（可选）",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="创建时间",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="更新时间",
    )

    provider: Mapped[ModelProvider] = relationship(lazy="selectin")
