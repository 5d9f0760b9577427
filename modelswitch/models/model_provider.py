"""
模型提供商

说明：
- code 全局唯一且创建后不可修改（切换、API Key、备份都通过 code 关联）
- 内置提供商（is_builtin）不允许修改名称/URL/模型
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from modelswitch.db.base import Base


class ModelProvider(Base):
    """模型提供商"""

    __tablename__ = "model_providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
        comment="提供商唯一标识（claude/deepseek/zhipu/openrouter/自定义）",
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="显示名称")

    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="描述")

    base_url: Mapped[str] = mapped_column(String(1024), nullable=False, comment="接口基础URL")

    model_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="主模型")

    model_name_small: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="轻量模型（ANTHROPIC_SMALL_FAST_MODEL）",
    )

    is_builtin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, comment="是否内置")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, comment="是否启用")

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="排序")

    icon_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="图标")

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

    def __repr__(self) -> str:
        return f"<ModelProvider(id={self.id}, code={self.code})>"
