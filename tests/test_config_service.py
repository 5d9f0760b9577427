import asyncio
import unittest

from sqlalchemy import select

from tests.support import create_session_maker, seed

from modelswitch.core.exceptions import ForbiddenError, NotFoundError
from modelswitch.models.config_backup import BackupType
from modelswitch.models.user_config import UserConfig
from modelswitch.schemas.config import UpdateConfigRequest
from modelswitch.services.config_service import ConfigService, snapshot_content


class TestConfigService(unittest.TestCase):
    def _run(self, scenario):
        async def _wrapper():
            engine, session_maker = await create_session_maker()
            try:
                async with session_maker() as session:
                    data = await seed(session)
                    await session.commit()
                async with session_maker() as session:
                    return await scenario(session, data)
            finally:
                await engine.dispose()

        return asyncio.run(_wrapper())

    def test_update_creates_backup_first(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            updated = await service.update_user_config(
                data.alice.id,
                UpdateConfigRequest(provider_code="deepseek", api_timeout=120000, extra_config={"region": "cn"}),
            )
            backups, total = await service.list_backups(data.alice.id)
            return updated, backups, total

        updated, backups, total = self._run(scenario)
        self.assertEqual(updated.current_provider.code, "deepseek")
        self.assertEqual(updated.api_timeout, 120000)
        self.assertEqual(updated.extra_config, {"region": "cn"})

        self.assertEqual(total, 1)
        self.assertEqual(backups[0].backup_name, "Auto backup before config update")
        self.assertEqual(backups[0].provider_code, "claude")
        self.assertEqual(backups[0].config_content["api_timeout"], 600000)

    def test_update_unknown_provider(self) -> None:
        async def scenario(session, data):
            with self.assertRaises(NotFoundError):
                await ConfigService(session).update_user_config(data.alice.id, UpdateConfigRequest(provider_code="kimi"))

        self._run(scenario)

    def test_restore_round_trip(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            await service.update_user_config(data.alice.id, UpdateConfigRequest(extra_config={"region": "us"}))
            backup = await service.create_manual_backup(data.alice.id, "before deepseek")
            await service.update_user_config(
                data.alice.id,
                UpdateConfigRequest(provider_code="deepseek", api_timeout=1000, extra_config={"region": "cn"}),
            )
            restored = await service.restore_backup(data.alice.id, backup.id)
            return backup, restored

        backup, restored = self._run(scenario)
        self.assertEqual(backup.backup_type, BackupType.MANUAL.value)
        self.assertEqual(backup.backup_name, "before deepseek")
        self.assertEqual(restored.current_provider.code, "claude")
        self.assertEqual(restored.api_timeout, 600000)
        self.assertEqual(restored.extra_config, {"region": "us"})

    def test_restore_keeps_extra_config_when_snapshot_has_none(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            backup = await service.create_manual_backup(data.alice.id)
            await service.update_user_config(data.alice.id, UpdateConfigRequest(extra_config={"region": "cn"}))
            restored = await service.restore_backup(data.alice.id, backup.id)
            return backup, restored

        backup, restored = self._run(scenario)
        self.assertEqual(backup.backup_name, "Manual backup of Claude 官方")
        self.assertIsNone(backup.config_content["extra_config"])
        self.assertEqual(restored.extra_config, {"region": "cn"})

    def test_restore_other_users_backup_is_forbidden(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            await service.update_user_config(data.bob.id, UpdateConfigRequest(provider_code="deepseek"))
            bob_backups, _ = await service.list_backups(data.bob.id)
            with self.assertRaises(ForbiddenError):
                await service.restore_backup(data.alice.id, bob_backups[0].id)
            with self.assertRaises(NotFoundError):
                await service.restore_backup(data.alice.id, 9999)
            config = (await session.execute(select(UserConfig).where(UserConfig.user_id == data.alice.id))).scalar_one()
            return config.current_provider_id, data

        provider_id, data = self._run(scenario)
        self.assertEqual(provider_id, data.claude.id)

    def test_list_backups_newest_first(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            for name in ("one", "two", "three"):
                await service.create_manual_backup(data.alice.id, name)
            await service.create_manual_backup(data.bob.id, "bob")
            first_page = await service.list_backups(data.alice.id, page=0, size=2)
            second_page = await service.list_backups(data.alice.id, page=1, size=2)
            return first_page, second_page

        (first, total), (second, _) = self._run(scenario)
        self.assertEqual(total, 3)
        self.assertEqual([b.backup_name for b in first], ["three", "two"])
        self.assertEqual([b.backup_name for b in second], ["one"])

    def test_missing_config(self) -> None:
        async def scenario(session, data):
            service = ConfigService(session)
            with self.assertRaises(NotFoundError):
                await service.get_user_config(9999)
            config = await service.get_user_config(data.alice.id)
            return config

        config = self._run(scenario)
        self.assertEqual(config.current_provider.code, "claude")


class TestSnapshotContent(unittest.TestCase):
    def test_keys(self) -> None:
        from types import SimpleNamespace

        config = SimpleNamespace(
            current_provider=SimpleNamespace(id=3, code="zhipu"),
            api_timeout=5000,
            extra_config={"a": 1},
        )
        self.assertEqual(
            snapshot_content(config),
            {"provider_id": 3, "provider_code": "zhipu", "api_timeout": 5000, "extra_config": {"a": 1}},
        )


if __name__ == "__main__":
    unittest.main()
