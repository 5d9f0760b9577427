"""
数据库会话管理
提供异步引擎、会话工厂与 FastAPI 依赖
"""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from modelswitch.core.config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


async def init_db(database_url: Optional[str] = None) -> None:
    """创建引擎与会话工厂（重复调用无副作用）"""
    global _engine, _session_maker
    if _engine is not None:
        return

    url = database_url or get_settings().database_url
    _engine = create_async_engine(url, pool_pre_ping=True)
    _session_maker = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    logger.info("数据库引擎已创建")


async def close_db() -> None:
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    if _session_maker is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")
    return _session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    请求级会话依赖

    约定：Repository 不负责 commit()，这里在请求成功结束时统一提交，
    出现异常时回滚。
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
