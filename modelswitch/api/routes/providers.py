"""
模型提供商路由
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.api.deps import get_current_user, get_db_session
from modelswitch.models.user import User
from modelswitch.schemas.provider import (
    ProviderConfigUpdate,
    ProviderCreate,
    ProviderTestRequest,
    ProviderUpdate,
)
from modelswitch.services.provider_service import ProviderService

router = APIRouter(prefix="/api/providers", tags=["模型提供商"])


@router.get("", summary="获取提供商列表（含当前用户是否已配置 Key）")
async def list_providers(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    providers = await ProviderService(db).list_providers_for_user(current_user.id)
    return {"success": True, "data": [p.model_dump(mode="json") for p in providers]}


@router.get("/{code}", summary="获取提供商详情")
async def get_provider(
    code: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    provider = await ProviderService(db).get_provider(code)
    return {"success": True, "data": provider.model_dump(mode="json")}


@router.post("", summary="创建自定义提供商")
async def create_provider(
    request: ProviderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    provider = await ProviderService(db).create_custom_provider(current_user.id, request)
    return {"success": True, "data": provider.model_dump(mode="json")}


@router.put("/{code}", summary="修改提供商（内置提供商不可修改）")
async def update_provider(
    code: str,
    request: ProviderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    provider = await ProviderService(db).update_provider(current_user.id, code, request)
    return {"success": True, "data": provider.model_dump(mode="json")}


@router.put("/{code}/config", summary="修改提供商连接参数")
async def update_provider_config(
    code: str,
    request: ProviderConfigUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    provider = await ProviderService(db).update_provider_config(current_user.id, code, request)
    return {"success": True, "data": provider.model_dump(mode="json")}


@router.post("/{code}/test", summary="测试提供商连接")
async def test_provider(
    code: str,
    request: Optional[ProviderTestRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await ProviderService(db).test_provider_connection(current_user.id, code, request)
    return {"success": True, "data": result.model_dump(mode="json")}
