import asyncio
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sqlalchemy import func, select

from tests.support import create_session_maker, make_vault, seed

from modelswitch.core.exceptions import NotFoundError, ProviderInactiveError
from modelswitch.models.config_backup import BackupType, ConfigBackup
from modelswitch.models.switch_history import SwitchHistory, SwitchType
from modelswitch.models.user import User
from modelswitch.models.user_config import UserConfig
from modelswitch.repositories.api_key_repository import ProviderApiKeyRepository
from modelswitch.schemas.switch import SwitchRequest
from modelswitch.services.settings_writer_service import SettingsWriterService
from modelswitch.services.switch_service import MutationOutcome, SwitchService


async def _count(session, model) -> int:
    result = await session.execute(select(func.count(model.id)))
    return int(result.scalar() or 0)


class _Harness:
    """每个测试一套独立的内存库 + 临时 settings.json"""

    def __init__(self, settings_path: Path):
        self.settings_path = settings_path

    async def __aenter__(self):
        self.engine, self.session_maker = await create_session_maker()
        async with self.session_maker() as session:
            self.data = await seed(session)
            await session.commit()
        return self

    async def __aexit__(self, *exc):
        await self.engine.dispose()

    def service(self, session) -> SwitchService:
        vault = make_vault()
        writer = SettingsWriterService(session, settings_path=self.settings_path, vault=vault)
        return SwitchService(session, settings_writer=writer, vault=vault)


class TestSwitchService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_successful_switch(self) -> None:
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    result = await h.service(session).switch(h.data.alice.id, SwitchRequest(provider_code="deepseek", client_info="cli"))
                    await session.commit()

                async with h.session_maker() as session:
                    config = (await session.execute(select(UserConfig).where(UserConfig.user_id == h.data.alice.id))).scalar_one()
                    backups = (await session.execute(select(ConfigBackup))).scalars().all()
                    histories = (await session.execute(select(SwitchHistory))).scalars().all()
                    return result, config.current_provider_id, backups, histories, h.data

        result, provider_id, backups, histories, data = asyncio.run(_run())

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Successfully switched to DeepSeek")
        self.assertEqual(result.previous_provider.code, "claude")
        self.assertEqual(result.current_provider.code, "deepseek")
        self.assertEqual(provider_id, data.deepseek.id)

        self.assertEqual(len(backups), 1)
        self.assertEqual(backups[0].backup_type, BackupType.AUTO_BEFORE_SWITCH.value)
        self.assertEqual(backups[0].backup_name, "Auto backup before switching to DeepSeek")
        self.assertEqual(backups[0].provider_code, "claude")
        self.assertEqual(backups[0].config_content["provider_id"], data.claude.id)

        self.assertEqual(len(histories), 1)
        self.assertTrue(histories[0].success)
        self.assertEqual(histories[0].from_provider_id, data.claude.id)
        self.assertEqual(histories[0].to_provider_id, data.deepseek.id)
        self.assertEqual(histories[0].switch_type, SwitchType.MANUAL.value)
        self.assertEqual(histories[0].client_info, "cli")

        written = json.loads((self.tmp / "settings.json").read_text(encoding="utf-8"))
        self.assertEqual(written["env"]["ANTHROPIC_BASE_URL"], "https://api.deepseek.com/anthropic")
        self.assertEqual(written["env"]["ANTHROPIC_MODEL"], "deepseek-chat")

    def test_already_active_has_no_side_effects(self) -> None:
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    result = await h.service(session).switch_to_provider(h.data.alice.id, "claude", SwitchType.MANUAL)
                    return result, await _count(session, ConfigBackup), await _count(session, SwitchHistory)

        result, backups, histories = asyncio.run(_run())
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Already using Claude 官方")
        self.assertEqual(result.current_provider.code, "claude")
        self.assertIsNotNone(result.switched_at)
        self.assertEqual((backups, histories), (0, 0))
        self.assertFalse((self.tmp / "settings.json").exists())

    def test_inactive_provider_is_rejected_without_mutation(self) -> None:
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    with self.assertRaises(ProviderInactiveError):
                        await h.service(session).switch_to_provider(h.data.alice.id, "legacy", SwitchType.MANUAL)
                    return await _count(session, ConfigBackup), await _count(session, SwitchHistory)

        self.assertEqual(asyncio.run(_run()), (0, 0))

    def test_lookup_failures(self) -> None:
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    service = h.service(session)
                    with self.assertRaises(NotFoundError):
                        await service.switch_to_provider(h.data.alice.id, "kimi", SwitchType.MANUAL)
                    with self.assertRaises(NotFoundError):
                        await service.switch_to_provider(9999, "deepseek", SwitchType.MANUAL)

        asyncio.run(_run())

    def test_settings_write_failure_returns_failed_result(self) -> None:
        blocker = self.tmp / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        async def _run():
            async with _Harness(blocker / "settings.json") as h:
                async with h.session_maker() as session:
                    result = await h.service(session).switch_to_provider(
                        h.data.alice.id,
                        "deepseek",
                        SwitchType.AI_NATURAL_LANGUAGE,
                        ai_prompt="换成 deepseek",
                    )
                    await session.commit()

                async with h.session_maker() as session:
                    config = (await session.execute(select(UserConfig).where(UserConfig.user_id == h.data.alice.id))).scalar_one()
                    histories = (await session.execute(select(SwitchHistory))).scalars().all()
                    backups = await _count(session, ConfigBackup)
                    return result, config.current_provider_id, histories, backups, h.data

        result, provider_id, histories, backups, data = asyncio.run(_run())

        self.assertFalse(result.success)
        self.assertTrue(result.message.startswith("Failed to switch: "))
        self.assertEqual(result.current_provider.code, "claude")
        # 当前提供商已回滚到切换前
        self.assertEqual(provider_id, data.claude.id)
        self.assertEqual(backups, 1)
        self.assertEqual(len(histories), 1)
        self.assertFalse(histories[0].success)
        self.assertEqual(histories[0].ai_prompt, "换成 deepseek")
        self.assertEqual(histories[0].switch_type, SwitchType.AI_NATURAL_LANGUAGE.value)
        self.assertTrue(histories[0].error_message)

    def test_history_is_paged_newest_first(self) -> None:
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    service = h.service(session)
                    for code in ("deepseek", "openrouter", "claude"):
                        await service.switch_to_provider(h.data.alice.id, code, SwitchType.MANUAL)
                    return await service.list_history(h.data.alice.id, page=0, size=2), h.data

        (rows, total), data = asyncio.run(_run())
        self.assertEqual(total, 3)
        self.assertEqual([r.to_provider_id for r in rows], [data.claude.id, data.openrouter.id])


async def _flush_invalid_user(self, *args, **kwargs):
    """在当前会话里触发一次 NOT NULL 约束失败的 flush"""
    self.db.add(User(username=None))
    await self.db.flush()


class TestSwitchDatabaseFailures(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _switch_and_reload(self):
        async def _run():
            async with _Harness(self.tmp / "settings.json") as h:
                async with h.session_maker() as session:
                    result = await h.service(session).switch_to_provider(h.data.alice.id, "deepseek", SwitchType.MANUAL)
                    await session.commit()

                async with h.session_maker() as session:
                    config = (await session.execute(select(UserConfig).where(UserConfig.user_id == h.data.alice.id))).scalar_one()
                    histories = (await session.execute(select(SwitchHistory))).scalars().all()
                    users = await _count(session, User)
                    return result, config.current_provider_id, histories, users, h.data

        return asyncio.run(_run())

    def test_last_used_flush_failure_does_not_break_switch(self) -> None:
        with mock.patch.object(ProviderApiKeyRepository, "touch_last_used", _flush_invalid_user):
            result, provider_id, histories, users, data = self._switch_and_reload()

        self.assertTrue(result.success)
        self.assertEqual(result.message, "Successfully switched to DeepSeek")
        self.assertEqual(provider_id, data.deepseek.id)
        self.assertEqual([h.success for h in histories], [True])
        self.assertEqual(users, 2)
        self.assertTrue((self.tmp / "settings.json").exists())

    def test_database_error_in_mutation_returns_failed_result(self) -> None:
        with mock.patch.object(SettingsWriterService, "write_to_settings", _flush_invalid_user):
            result, provider_id, histories, users, data = self._switch_and_reload()

        self.assertFalse(result.success)
        self.assertTrue(result.message.startswith("Failed to switch: "))
        self.assertEqual(result.previous_provider.code, "claude")
        self.assertEqual(result.current_provider.code, "claude")
        # 保存点回滚：当前提供商恢复，失败的写入不残留
        self.assertEqual(provider_id, data.claude.id)
        self.assertEqual(users, 2)
        self.assertEqual(len(histories), 1)
        self.assertFalse(histories[0].success)
        self.assertEqual(histories[0].to_provider_id, data.deepseek.id)
        self.assertTrue(histories[0].error_message)
        self.assertFalse((self.tmp / "settings.json").exists())


class TestMutationOutcome(unittest.TestCase):
    def test_variants(self) -> None:
        self.assertEqual(MutationOutcome.succeeded(), MutationOutcome(ok=True))
        failed = MutationOutcome.failed("boom")
        self.assertFalse(failed.ok)
        self.assertEqual(failed.error, "boom")


if __name__ == "__main__":
    unittest.main()
