"""
健康检查
"""
from fastapi import APIRouter

from modelswitch import __version__

router = APIRouter(tags=["健康检查"])


@router.get("/health", summary="健康检查")
async def health():
    return {"success": True, "data": {"status": "ok", "version": __version__}}
