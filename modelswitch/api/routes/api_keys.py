"""
提供商 API Key 路由
明文 Key 只写不读，列表只返回 key_hint
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.api.deps import get_current_user, get_db_session
from modelswitch.models.user import User
from modelswitch.schemas.api_key import ApiKeySetRequest
from modelswitch.services.api_key_service import ApiKeyService

router = APIRouter(prefix="/api/api-keys", tags=["API Key 管理"])


@router.get("", summary="获取已配置的 API Key")
async def list_api_keys(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    keys = await ApiKeyService(db).list_api_keys(current_user.id)
    return {"success": True, "data": [k.model_dump(mode="json") for k in keys]}


@router.put("", summary="设置 API Key（已存在则覆盖）")
async def set_api_key(
    request: ApiKeySetRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    info = await ApiKeyService(db).set_api_key(current_user.id, request.provider_code, request.api_key)
    return {"success": True, "data": info.model_dump(mode="json")}


@router.delete("/{provider_code}", summary="删除 API Key")
async def delete_api_key(
    provider_code: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await ApiKeyService(db).delete_api_key(current_user.id, provider_code)
    return {"success": True, "data": None}
