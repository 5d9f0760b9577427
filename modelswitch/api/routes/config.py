"""
用户配置 / 备份 / 本机 settings.json 路由
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.api.deps import get_current_user, get_db_session
from modelswitch.models.user import User
from modelswitch.schemas.config import CreateBackupRequest, UpdateConfigRequest
from modelswitch.services.config_service import ConfigService
from modelswitch.services.local_config_service import LocalConfigService

router = APIRouter(prefix="/api/config", tags=["配置管理"])


@router.get("", summary="获取当前配置")
async def get_config(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    config = await ConfigService(db).get_user_config(current_user.id)
    return {"success": True, "data": config.model_dump(mode="json")}


@router.put("", summary="更新配置（更新前自动备份）")
async def update_config(
    request: UpdateConfigRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    config = await ConfigService(db).update_user_config(current_user.id, request)
    return {"success": True, "data": config.model_dump(mode="json")}


@router.get("/backups", summary="分页获取配置备份")
async def list_backups(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    backups, total = await ConfigService(db).list_backups(current_user.id, page, size)
    return {
        "success": True,
        "data": {
            "items": [b.model_dump(mode="json") for b in backups],
            "total": total,
            "page": page,
            "size": size,
        },
    }


@router.post("/backups", summary="手动创建备份")
async def create_backup(
    request: CreateBackupRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    backup = await ConfigService(db).create_manual_backup(current_user.id, request.backup_name)
    return {"success": True, "data": backup.model_dump(mode="json")}


@router.post("/backups/{backup_id}/restore", summary="恢复备份（不写 settings.json）")
async def restore_backup(
    backup_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    config = await ConfigService(db).restore_backup(current_user.id, backup_id)
    return {"success": True, "data": config.model_dump(mode="json")}


@router.get("/local", summary="读取本机 settings.json")
async def get_local_config(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    local = LocalConfigService(db).describe_local_config()
    return {"success": True, "data": local.model_dump(mode="json")}


@router.post("/local/sync", summary="把本机 settings.json 回写到提供商配置")
async def sync_local_config(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    updated = await LocalConfigService(db).sync_local_config_to_database()
    return {"success": True, "data": {"updated": updated}}
