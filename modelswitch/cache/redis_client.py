"""
Redis 客户端管理
提供 Redis 连接和切换锁需要的基础操作
"""
from typing import Optional

from redis import asyncio as aioredis
from redis.asyncio import Redis

from modelswitch.core.config import get_settings

# 仅当 value 匹配时删除，避免误删别人持有的锁
_DELETE_IF_EQUALS_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisClient:
    """
    Redis 客户端封装类
    提供连接管理和基础操作方法
    """

    def __init__(self, url: Optional[str] = None):
        """初始化 Redis 客户端"""
        self._client: Optional[Redis] = None
        self._url = url or get_settings().redis_url

    async def connect(self) -> None:
        """
        建立 Redis 连接
        配置连接池参数
        """
        if self._client is None:
            if not self._url:
                raise RuntimeError("REDIS_URL 未配置")
            self._client = await aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
                socket_timeout=5.0,
                health_check_interval=30,
            )

    async def disconnect(self) -> None:
        """关闭 Redis 连接"""
        if self._client:
            await self._client.close()
            self._client = None

    async def ping(self) -> bool:
        """
        检查 Redis 连接是否正常

        Returns:
            bool: 连接正常返回 True,否则返回 False
        """
        try:
            if self._client is None:
                await self.connect()
            return await self._client.ping()
        except Exception:
            return False

    async def set_if_not_exists(
        self,
        key: str,
        value: str,
        expire: Optional[int] = None,
    ) -> bool:
        """
        仅当 key 不存在时设置键值（SET NX）

        用于实现分布式锁等场景。
        """
        if self._client is None:
            await self.connect()
        return bool(await self._client.set(key, value, ex=expire, nx=True))

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """释放锁：只删除自己写入的值"""
        if self._client is None:
            await self.connect()
        return bool(await self._client.eval(_DELETE_IF_EQUALS_SCRIPT, 1, key, value))


# 全局 Redis 客户端实例（未配置 REDIS_URL 时为 None）
_redis_client: Optional[RedisClient] = None


def get_redis_client() -> Optional[RedisClient]:
    """
    获取 Redis 客户端实例
    使用单例模式；未配置 REDIS_URL 时返回 None
    """
    global _redis_client
    if _redis_client is None and get_settings().redis_url:
        _redis_client = RedisClient()
    return _redis_client


async def init_redis() -> None:
    """初始化 Redis 连接（未配置时跳过）"""
    client = get_redis_client()
    if client is not None:
        await client.connect()


async def close_redis() -> None:
    """关闭 Redis 连接"""
    global _redis_client
    if _redis_client:
        await _redis_client.disconnect()
        _redis_client = None
