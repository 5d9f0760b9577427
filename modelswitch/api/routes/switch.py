"""
切换路由
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.api.deps import get_current_user, get_db_session, get_switch_lock
from modelswitch.cache import SwitchLock
from modelswitch.models.user import User
from modelswitch.schemas.switch import SwitchRequest
from modelswitch.services.switch_service import SwitchService

router = APIRouter(prefix="/api/switch", tags=["切换"])


@router.post("", summary="切换当前提供商")
async def switch_provider(
    request: SwitchRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    lock: SwitchLock = Depends(get_switch_lock),
):
    # 失败也返回 200 + success=False 的结构化结果
    result = await SwitchService(db, lock=lock).switch(current_user.id, request)
    return {"success": result.success, "data": result.model_dump(mode="json")}


@router.get("/history", summary="分页获取切换历史")
async def list_history(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    rows, total = await SwitchService(db).list_history(current_user.id, page, size)
    return {
        "success": True,
        "data": {
            "items": [r.model_dump(mode="json") for r in rows],
            "total": total,
            "page": page,
            "size": size,
        },
    }
