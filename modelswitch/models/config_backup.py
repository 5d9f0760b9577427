"""
配置备份

说明：
- 每次修改配置前自动创建（auto_before_switch），也可手动创建（manual）
- 只增不改；恢复备份不会删除任何备份
- provider_code / provider_name 是快照时的拷贝，提供商被删除后备份仍可读
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from modelswitch.db.base import Base


class BackupType(str, enum.Enum):
    MANUAL = "manual"
    AUTO_BEFORE_SWITCH = "auto_before_switch"


class ConfigBackup(Base):
    """配置备份"""

    __tablename__ = "config_backups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="关联的用户ID",
    )

    provider_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("model_providers.id", ondelete="SET NULL"),
        nullable=True,
        comment="备份时的提供商ID",
    )

    provider_code: Mapped[str] = mapped_column(String(50), nullable=False, comment="备份时的提供商 code")

    provider_name: Mapped[str] = mapped_column(String(100), nullable=False, comment="备份时的提供商名称")

    backup_name: Mapped[str] = mapped_column(String(255), nullable=False, comment="备份说明")

    config_content: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="配置快照（provider_id/provider_code/api_timeout/extra_config）",
    )

    backup_type: Mapped[str] = mapped_column(
        String(32),
        default=BackupType.MANUAL.value,
        nullable=False,
        comment="manual / auto_before_switch",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
        comment="创建时间",
    )
