"""
模型提供商相关的数据模式
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ProviderInfo(BaseModel):
    """提供商信息"""
    id: int
    code: str = Field(..., description="提供商唯一标识")
    name: str
    description: Optional[str] = None
    base_url: str
    model_name: Optional[str] = None
    model_name_small: Optional[str] = None
    is_builtin: bool = False
    is_active: bool = True
    sort_order: int = 0
    icon_url: Optional[str] = None
    has_api_key: bool = Field(False, description="当前用户是否已配置 API Key")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProviderCreate(BaseModel):
    """创建自定义提供商"""
    code: str = Field(..., min_length=1, max_length=50, description="提供商唯一标识")
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    base_url: str = Field(..., min_length=1, max_length=500)
    model_name: str = Field(..., min_length=1, max_length=100)
    model_name_small: Optional[str] = Field(None, max_length=100)
    icon_url: Optional[str] = None


class ProviderUpdate(BaseModel):
    """更新提供商（内置提供商不可修改）"""
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    base_url: Optional[str] = Field(None, max_length=500)
    model_name: Optional[str] = Field(None, max_length=100)
    model_name_small: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    icon_url: Optional[str] = None


class ProviderConfigUpdate(BaseModel):
    """只更新连接参数；model_name_small 传空字符串表示清空"""
    base_url: Optional[str] = Field(None, max_length=500)
    model_name: Optional[str] = Field(None, max_length=100)
    model_name_small: Optional[str] = Field(None, max_length=100)


class ProviderTestRequest(BaseModel):
    """连接测试；不传则使用已保存的配置"""
    base_url: Optional[str] = None
    model_name: Optional[str] = None
    api_key: Optional[str] = None


class ProviderTestResult(BaseModel):
    success: bool
    message: str
    model_name: Optional[str] = None
    response_time_ms: int = 0
    status_code: Optional[int] = None
