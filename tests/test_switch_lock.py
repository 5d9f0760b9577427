import asyncio
import unittest

from modelswitch.cache.switch_lock import SwitchLock
from modelswitch.core.exceptions import ExternalServiceError


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.fail_release = False

    async def set_if_not_exists(self, key, value, expire=None):
        if key in self.store:
            return False
        self.store[key] = value
        return True

    async def delete_if_equals(self, key, value):
        if self.fail_release:
            raise ConnectionError("redis down")
        if self.store.get(key) == value:
            del self.store[key]
            return True
        return False


class TestSwitchLock(unittest.TestCase):
    def test_local_lock_serializes_writers(self) -> None:
        async def _run():
            lock = SwitchLock()
            events = []

            async def writer(name):
                async with lock.hold("/tmp/settings.json"):
                    events.append(f"{name}-in")
                    await asyncio.sleep(0.01)
                    events.append(f"{name}-out")

            await asyncio.gather(writer("a"), writer("b"))
            return events

        events = asyncio.run(_run())
        self.assertEqual(events, ["a-in", "a-out", "b-in", "b-out"])

    def test_redis_lock_is_released(self) -> None:
        async def _run():
            redis = FakeRedis()
            lock = SwitchLock(redis)
            key = SwitchLock.redis_key("/tmp/settings.json")
            async with lock.hold("/tmp/settings.json"):
                held = key in redis.store
            return held, redis.store

        held, store = asyncio.run(_run())
        self.assertTrue(held)
        self.assertEqual(store, {})

    def test_redis_lock_held_elsewhere_times_out(self) -> None:
        async def _run():
            redis = FakeRedis()
            redis.store[SwitchLock.redis_key("/tmp/settings.json")] = "other-process"
            lock = SwitchLock(redis, acquire_timeout=0.05, poll_interval=0.01)
            with self.assertRaises(ExternalServiceError):
                async with lock.hold("/tmp/settings.json"):
                    pass
            return redis.store

        store = asyncio.run(_run())
        # 别人的锁不能被释放
        self.assertEqual(list(store.values()), ["other-process"])

    def test_release_failure_does_not_mask_body(self) -> None:
        async def _run():
            redis = FakeRedis()
            redis.fail_release = True
            lock = SwitchLock(redis)
            async with lock.hold("/tmp/settings.json"):
                return "done"

        self.assertEqual(asyncio.run(_run()), "done")

    def test_key_includes_path(self) -> None:
        key = SwitchLock.redis_key("/home/u/.claude/settings.json")
        self.assertTrue(key.startswith("settings_write_lock:"))
        self.assertTrue(key.endswith(":/home/u/.claude/settings.json"))


if __name__ == "__main__":
    unittest.main()
