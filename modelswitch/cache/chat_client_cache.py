"""
按提供商缓存的上游 HTTP 客户端

key = provider_code + sha256(api_key)，同一提供商换了 key 会得到新的客户端。
没有自动过期；提供商配置变化后需显式调用 clear()。
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Callable, Dict, List

import httpx

logger = logging.getLogger(__name__)


def cache_key(provider_code: str, api_key: str) -> str:
    digest = hashlib.sha256((api_key or "").encode("utf-8")).hexdigest()[:16]
    return f"{provider_code}_{digest}"


class ChatClientCache:
    def __init__(self) -> None:
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        provider_code: str,
        api_key: str,
        factory: Callable[[], httpx.AsyncClient],
    ) -> httpx.AsyncClient:
        key = cache_key(provider_code, api_key)
        client = self._clients.get(key)
        if client is not None and not client.is_closed:
            return client
        with self._lock:
            client = self._clients.get(key)
            if client is None or client.is_closed:
                client = factory()
                self._clients[key] = client
            return client

    def __len__(self) -> int:
        return len(self._clients)

    async def clear(self) -> int:
        """清空缓存并关闭所有客户端，返回清理数量"""
        with self._lock:
            clients: List[httpx.AsyncClient] = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            try:
                await client.aclose()
            except Exception as e:
                logger.warning("关闭上游客户端失败(已忽略): %s", e)
        logger.info("Cleared chat client cache: %s", len(clients))
        return len(clients)
