"""
提供商 API Key 相关的数据模式
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ApiKeySetRequest(BaseModel):
    """设置（新增或覆盖）某个提供商的 API Key"""
    provider_code: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1, description="明文 API Key，仅用于加密保存")


class ApiKeyInfo(BaseModel):
    """API Key 信息（不包含明文）"""
    id: int
    provider_id: int
    provider_code: str
    provider_name: str
    key_hint: str = Field(..., description="展示用提示，如 sk-a...wxyz")
    is_valid: bool
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
