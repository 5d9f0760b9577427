"""
用户配置（每个 user 一条）

current_provider_id 指向当前生效的提供商，每次切换成功后更新。
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from modelswitch.db.base import Base
from modelswitch.models.model_provider import ModelProvider

DEFAULT_API_TIMEOUT_MS = 600000


class UserConfig(Base):
    """用户配置"""

    __tablename__ = "user_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
        comment="关联的用户ID",
    )

    current_provider_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("model_providers.id"),
        nullable=False,
        comment="当前提供商",
    )

    api_timeout: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_API_TIMEOUT_MS,
        nullable=False,
        comment="请求超时（毫秒）",
    )

    extra_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="其他设置",
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

    current_provider: Mapped[ModelProvider] = relationship(lazy="selectin")
