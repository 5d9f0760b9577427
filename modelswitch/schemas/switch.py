"""
切换相关的数据模式
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from modelswitch.schemas.provider import ProviderInfo


class SwitchRequest(BaseModel):
    provider_code: str = Field(..., min_length=1, description="目标提供商 code")
    client_info: Optional[str] = Field(None, max_length=500)


class SwitchResult(BaseModel):
    """切换结果；失败时 success=False 且 current_provider 为切换前的提供商"""

    success: bool
    message: str
    previous_provider: Optional[ProviderInfo] = None
    current_provider: Optional[ProviderInfo] = None
    switched_at: datetime


class SwitchHistoryResponse(BaseModel):
    id: int
    from_provider_id: Optional[int] = None
    to_provider_id: int
    switch_type: str
    ai_prompt: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    client_info: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NaturalLanguageRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    session_id: Optional[str] = Field(None, max_length=64)
    client_info: Optional[str] = Field(None, max_length=500)


class NaturalLanguageResponse(BaseModel):
    session_id: str
    response: str
    switched: bool = False
    switch_result: Optional[SwitchResult] = None


class ConversationMessage(BaseModel):
    role: str
    content: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
