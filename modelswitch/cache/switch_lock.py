"""
settings.json 写入串行化

settings.json 是整机共享的单个文件，并发切换会互相覆盖。这里提供两层锁：
- 进程内：每个文件路径一把 asyncio.Lock
- 跨进程（可选）：配置了 Redis 时再加一把 SET NX 锁，key 包含主机名和路径
"""

from __future__ import annotations

import asyncio
import logging
import socket
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from modelswitch.cache.redis_client import RedisClient
from modelswitch.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class SwitchLock:
    def __init__(
        self,
        redis: Optional[RedisClient] = None,
        *,
        ttl_seconds: int = 30,
        acquire_timeout: float = 10.0,
        poll_interval: float = 0.1,
    ):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.acquire_timeout = acquire_timeout
        self.poll_interval = poll_interval
        self._local_locks: Dict[str, asyncio.Lock] = {}

    def _local_lock(self, path: str) -> asyncio.Lock:
        lock = self._local_locks.get(path)
        if lock is None:
            lock = self._local_locks.setdefault(path, asyncio.Lock())
        return lock

    @staticmethod
    def redis_key(path: str) -> str:
        return f"settings_write_lock:{socket.gethostname()}:{path}"

    async def _acquire_redis(self, key: str, token: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.acquire_timeout
        while True:
            if await self.redis.set_if_not_exists(key, token, expire=self.ttl_seconds):
                return
            if loop.time() >= deadline:
                raise ExternalServiceError("settings.json 正在被其他进程写入，请稍后重试")
            await asyncio.sleep(self.poll_interval)

    @asynccontextmanager
    async def hold(self, path: str) -> AsyncIterator[None]:
        async with self._local_lock(path):
            if self.redis is None:
                yield
                return
            key = self.redis_key(path)
            token = uuid.uuid4().hex
            await self._acquire_redis(key, token)
            try:
                yield
            finally:
                try:
                    await self.redis.delete_if_equals(key, token)
                except Exception as e:
                    logger.warning("释放切换锁失败(等待过期): key=%s error=%s", key, e)
