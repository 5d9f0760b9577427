"""
测试公共工具：内存 SQLite + 基础数据
"""
import os
from types import SimpleNamespace

from cryptography.fernet import Fernet

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("API_KEY_ENCRYPTION_KEY", Fernet.generate_key().decode("ascii"))

from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import modelswitch.models  # noqa: E402,F401
from modelswitch.db.base import Base  # noqa: E402
from modelswitch.models.model_provider import ModelProvider  # noqa: E402
from modelswitch.models.user import User  # noqa: E402
from modelswitch.models.user_config import UserConfig  # noqa: E402
from modelswitch.utils.encryption import SecretVault  # noqa: E402

TEST_FERNET_KEY = os.environ["API_KEY_ENCRYPTION_KEY"]


def make_vault() -> SecretVault:
    return SecretVault(TEST_FERNET_KEY)


async def create_session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite 默认延迟 BEGIN，SAVEPOINT 无法正常工作；改为由 SQLAlchemy 显式发出 BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


async def seed(session) -> SimpleNamespace:
    """两个用户（都指向 claude），四个提供商（legacy 已停用）"""
    alice = User(username="alice")
    bob = User(username="bob")
    claude = ModelProvider(
        code="claude",
        name="Claude 官方",
        base_url="https://api.anthropic.com",
        model_name="claude-sonnet-4",
        is_builtin=True,
        sort_order=1,
    )
    deepseek = ModelProvider(
        code="deepseek",
        name="DeepSeek",
        base_url="https://api.deepseek.com/anthropic",
        model_name="deepseek-chat",
        model_name_small="deepseek-chat",
        is_builtin=True,
        sort_order=2,
    )
    openrouter = ModelProvider(
        code="openrouter",
        name="OpenRouter",
        base_url="https://openrouter.ai/api",
        model_name="deepseek/deepseek-chat",
        is_builtin=True,
        sort_order=4,
    )
    legacy = ModelProvider(
        code="legacy",
        name="Legacy",
        base_url="https://legacy.example.com",
        model_name="legacy-1",
        is_active=False,
        sort_order=9,
    )
    session.add_all([alice, bob, claude, deepseek, openrouter, legacy])
    await session.flush()

    session.add_all(
        [
            UserConfig(user_id=alice.id, current_provider=claude),
            UserConfig(user_id=bob.id, current_provider=claude),
        ]
    )
    await session.flush()

    return SimpleNamespace(
        alice=alice,
        bob=bob,
        claude=claude,
        deepseek=deepseek,
        openrouter=openrouter,
        legacy=legacy,
    )
