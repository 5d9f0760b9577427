"""
用户配置与备份相关的数据模式
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from modelswitch.schemas.provider import ProviderInfo


class UserConfigResponse(BaseModel):
    id: int
    user_id: int
    current_provider: Optional[ProviderInfo] = None
    api_timeout: int
    extra_config: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None


class UpdateConfigRequest(BaseModel):
    """更新配置；字段为空表示不修改"""

    provider_code: Optional[str] = Field(None, description="目标提供商 code")
    api_timeout: Optional[int] = Field(None, gt=0, description="请求超时（毫秒）")
    extra_config: Optional[Dict[str, Any]] = None


class CreateBackupRequest(BaseModel):
    backup_name: Optional[str] = Field(None, max_length=100)


class ConfigBackupResponse(BaseModel):
    id: int
    provider_id: Optional[int] = None
    provider_code: str
    provider_name: str
    backup_name: str
    config_content: Dict[str, Any]
    backup_type: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PageResponse(BaseModel):
    items: List[Any]
    total: int
    page: int
    size: int


class LocalConfigResponse(BaseModel):
    """本机 settings.json 当前内容（已脱敏）"""

    settings_path: str
    exists: bool
    provider_code: str
    base_url: Optional[str] = None
    model_name: Optional[str] = None
    model_name_small: Optional[str] = None
    has_auth_token: bool = False
    api_timeout: Optional[int] = None
