"""
缓存与锁模块
"""
from modelswitch.cache.chat_client_cache import ChatClientCache
from modelswitch.cache.redis_client import RedisClient, close_redis, get_redis_client, init_redis
from modelswitch.cache.switch_lock import SwitchLock

__all__ = [
    "ChatClientCache",
    "RedisClient",
    "SwitchLock",
    "close_redis",
    "get_redis_client",
    "init_redis",
]
