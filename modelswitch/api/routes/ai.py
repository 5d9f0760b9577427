"""
自然语言切换路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.api.deps import get_chat_client_cache, get_current_user, get_db_session, get_switch_lock
from modelswitch.cache import ChatClientCache, SwitchLock
from modelswitch.models.user import User
from modelswitch.schemas.switch import NaturalLanguageRequest
from modelswitch.services.ai_chat_service import AiChatService

router = APIRouter(prefix="/api/ai", tags=["AI 助手"])


@router.post("/chat", summary="自然语言对话/切换")
async def chat(
    request: NaturalLanguageRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    cache: ChatClientCache = Depends(get_chat_client_cache),
    lock: SwitchLock = Depends(get_switch_lock),
):
    service = AiChatService(db, client_cache=cache, lock=lock)
    response = await service.process_natural_language(current_user.id, request)
    return {"success": True, "data": response.model_dump(mode="json")}


@router.get("/conversations/latest", summary="获取最近一次会话")
async def latest_conversation(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    cache: ChatClientCache = Depends(get_chat_client_cache),
):
    session_id, messages = await AiChatService(db, client_cache=cache).get_latest_conversation(current_user.id)
    return {
        "success": True,
        "data": {"session_id": session_id, "messages": [m.model_dump(mode="json") for m in messages]},
    }


@router.get("/conversations/{session_id}", summary="获取会话记录")
async def conversation_history(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    cache: ChatClientCache = Depends(get_chat_client_cache),
):
    session_id, messages = await AiChatService(db, client_cache=cache).get_conversation_history(current_user.id, session_id)
    return {
        "success": True,
        "data": {"session_id": session_id, "messages": [m.model_dump(mode="json") for m in messages]},
    }


@router.post("/cache/clear", summary="清空上游客户端缓存")
async def clear_cache(
    current_user: User = Depends(get_current_user),
    cache: ChatClientCache = Depends(get_chat_client_cache),
):
    cleared = await cache.clear()
    return {"success": True, "data": {"cleared": cleared}}
