"""
FastAPI 依赖注入
"""
import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.cache import ChatClientCache, SwitchLock, get_redis_client
from modelswitch.core.config import get_settings
from modelswitch.db.session import get_db
from modelswitch.models.user import User
from modelswitch.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# 进程级单例
_chat_client_cache: Optional[ChatClientCache] = None
_switch_lock: Optional[SwitchLock] = None


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    """获取数据库会话（事务由 get_db 统一提交/回滚）"""
    return db


def decode_user_id(token: str) -> int:
    """
    校验 Bearer JWT 并取出用户ID（sub）

    令牌由认证服务签发，这里只校验签名和过期时间。
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="令牌已过期")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="无效的令牌")

    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="令牌缺少用户信息")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="未提供认证令牌",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = decode_user_id(credentials.credentials)
    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="用户不存在")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="用户已被禁用")
    return user


def get_chat_client_cache() -> ChatClientCache:
    global _chat_client_cache
    if _chat_client_cache is None:
        _chat_client_cache = ChatClientCache()
    return _chat_client_cache


def get_switch_lock() -> SwitchLock:
    """配置了 REDIS_URL 时同时使用 Redis 跨进程锁"""
    global _switch_lock
    if _switch_lock is None:
        _switch_lock = SwitchLock(
            get_redis_client(),
            ttl_seconds=get_settings().switch_lock_ttl_seconds,
        )
    return _switch_lock
