import asyncio
import unittest

import httpx

from modelswitch.cache.chat_client_cache import ChatClientCache, cache_key


class TestChatClientCache(unittest.TestCase):
    def test_key_does_not_contain_api_key(self) -> None:
        key = cache_key("deepseek", "sk-secret-value")
        self.assertTrue(key.startswith("deepseek_"))
        self.assertNotIn("sk-secret-value", key)
        self.assertEqual(len(key), len("deepseek_") + 16)
        self.assertEqual(key, cache_key("deepseek", "sk-secret-value"))
        self.assertNotEqual(key, cache_key("deepseek", "sk-other-value"))

    def test_reuse_and_clear(self) -> None:
        async def _run():
            cache = ChatClientCache()
            created = []

            def factory():
                client = httpx.AsyncClient()
                created.append(client)
                return client

            a = cache.get_or_create("deepseek", "k1", factory)
            b = cache.get_or_create("deepseek", "k1", factory)
            c = cache.get_or_create("deepseek", "k2", factory)
            size = len(cache)
            cleared = await cache.clear()
            return a, b, c, size, cleared, created, len(cache)

        a, b, c, size, cleared, created, after = asyncio.run(_run())
        self.assertIs(a, b)
        self.assertIsNot(a, c)
        self.assertEqual(size, 2)
        self.assertEqual(cleared, 2)
        self.assertEqual(after, 0)
        self.assertTrue(all(client.is_closed for client in created))

    def test_closed_client_is_replaced(self) -> None:
        async def _run():
            cache = ChatClientCache()
            first = cache.get_or_create("zhipu", "k", httpx.AsyncClient)
            await first.aclose()
            second = cache.get_or_create("zhipu", "k", httpx.AsyncClient)
            await cache.clear()
            return first, second

        first, second = asyncio.run(_run())
        self.assertIsNot(first, second)


if __name__ == "__main__":
    unittest.main()
