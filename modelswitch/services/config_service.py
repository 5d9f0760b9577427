"""
用户配置服务

负责：
- 读取/更新当前用户配置（更新前自动备份）
- 配置备份的创建、分页查询、恢复

恢复备份只回滚数据库中的配置，不写 settings.json，也不记录切换历史。
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.core.exceptions import ForbiddenError, NotFoundError
from modelswitch.models.config_backup import BackupType, ConfigBackup
from modelswitch.models.user_config import DEFAULT_API_TIMEOUT_MS, UserConfig
from modelswitch.repositories.config_backup_repository import ConfigBackupRepository
from modelswitch.repositories.model_provider_repository import ModelProviderRepository
from modelswitch.repositories.user_config_repository import UserConfigRepository
from modelswitch.repositories.user_repository import UserRepository
from modelswitch.schemas.config import ConfigBackupResponse, UpdateConfigRequest, UserConfigResponse
from modelswitch.schemas.provider import ProviderInfo

logger = logging.getLogger(__name__)


def snapshot_content(config: UserConfig) -> Dict[str, Any]:
    provider = config.current_provider
    return {
        "provider_id": provider.id,
        "provider_code": provider.code,
        "api_timeout": config.api_timeout,
        "extra_config": config.extra_config,
    }


def config_to_response(config: UserConfig) -> UserConfigResponse:
    return UserConfigResponse(
        id=config.id,
        user_id=config.user_id,
        current_provider=ProviderInfo.model_validate(config.current_provider) if config.current_provider else None,
        api_timeout=config.api_timeout,
        extra_config=config.extra_config,
        updated_at=config.updated_at,
    )


class ConfigService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.configs = UserConfigRepository(db)
        self.providers = ModelProviderRepository(db)
        self.backups = ConfigBackupRepository(db)

    async def _require_config(self, user_id: int) -> UserConfig:
        config = await self.configs.get_by_user_id(user_id)
        if config is None:
            raise NotFoundError("Config not found", error_code="CONFIG_NOT_FOUND")
        return config

    async def get_user_config(self, user_id: int) -> UserConfigResponse:
        return config_to_response(await self._require_config(user_id))

    async def update_user_config(self, user_id: int, request: UpdateConfigRequest) -> UserConfigResponse:
        config = await self._require_config(user_id)

        provider = config.current_provider
        if request.provider_code:
            provider = await self.providers.get_by_code(request.provider_code)
            if provider is None:
                raise NotFoundError(f"Provider not found: {request.provider_code}", error_code="PROVIDER_NOT_FOUND")

        await self.create_backup(
            user_id,
            config,
            BackupType.AUTO_BEFORE_SWITCH,
            "Auto backup before config update",
        )

        config.current_provider = provider
        if request.api_timeout is not None:
            config.api_timeout = request.api_timeout
        if request.extra_config is not None:
            config.extra_config = request.extra_config

        config = await self.configs.save(config)
        logger.info("Updated config for user: %s, provider: %s", user_id, provider.code)
        return config_to_response(config)

    async def create_backup(
        self,
        user_id: int,
        config: UserConfig,
        backup_type: BackupType,
        backup_name: str,
    ) -> ConfigBackup:
        if await self.users.get_by_id(user_id) is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND")

        provider = config.current_provider
        backup = await self.backups.create(
            user_id=user_id,
            provider_id=provider.id,
            provider_code=provider.code,
            provider_name=provider.name,
            backup_name=backup_name,
            config_content=snapshot_content(config),
            backup_type=backup_type.value,
        )
        logger.info("Created backup for user: %s, type: %s", user_id, backup_type.value)
        return backup

    async def create_manual_backup(self, user_id: int, backup_name: Optional[str] = None) -> ConfigBackupResponse:
        config = await self._require_config(user_id)
        name = (backup_name or "").strip() or f"Manual backup of {config.current_provider.name}"
        backup = await self.create_backup(user_id, config, BackupType.MANUAL, name)
        return ConfigBackupResponse.model_validate(backup)

    async def list_backups(self, user_id: int, page: int = 0, size: int = 20) -> Tuple[List[ConfigBackupResponse], int]:
        """page 从 0 开始；total 单独统计，不受分页影响"""
        page = max(page, 0)
        size = max(size, 1)
        backups = await self.backups.list_by_user_id(user_id=user_id, limit=size, offset=page * size)
        total = await self.backups.count_by_user_id(user_id)
        return [ConfigBackupResponse.model_validate(b) for b in backups], total

    async def restore_backup(self, user_id: int, backup_id: int) -> UserConfigResponse:
        backup = await self.backups.get_by_id(backup_id)
        if backup is None:
            raise NotFoundError("Backup not found", error_code="BACKUP_NOT_FOUND")
        if backup.user_id != user_id:
            raise ForbiddenError("Cannot restore another user's backup")

        config = await self._require_config(user_id)

        content = backup.config_content or {}
        provider_id = content.get("provider_id")
        provider = await self.providers.get_by_id(int(provider_id)) if provider_id is not None else None
        if provider is None:
            raise NotFoundError("Provider not found", error_code="PROVIDER_NOT_FOUND")

        config.current_provider = provider
        config.api_timeout = int(content.get("api_timeout") or DEFAULT_API_TIMEOUT_MS)
        extra_config = content.get("extra_config")
        if extra_config is not None:
            config.extra_config = extra_config

        config = await self.configs.save(config)
        logger.info("Restored backup: %s for user: %s", backup_id, user_id)
        return config_to_response(config)
