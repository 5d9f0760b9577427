"""
提供商切换服务

一次切换按固定顺序执行：
1) 校验用户/提供商/配置
2) 目标即当前提供商时直接返回，不产生任何副作用
3) 变更前自动备份当前配置
4) 变更：更新当前提供商 -> 标记 API Key 使用时间 -> 写 settings.json
5) 记录切换历史（成功失败都记）

变更阶段在 SAVEPOINT 中执行：任一步失败（包括数据库错误）都回滚到保存点，
当前提供商随之恢复为切换前的值；随后记录失败历史并返回 success=False 的结果。
settings.json 是最后一步且原子替换，失败时文件保持原样。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.cache.switch_lock import SwitchLock
from modelswitch.core.exceptions import NotFoundError, ProviderInactiveError
from modelswitch.models.config_backup import BackupType
from modelswitch.models.model_provider import ModelProvider
from modelswitch.models.switch_history import SwitchType
from modelswitch.models.user_config import UserConfig
from modelswitch.repositories.model_provider_repository import ModelProviderRepository
from modelswitch.repositories.switch_history_repository import SwitchHistoryRepository
from modelswitch.repositories.user_config_repository import UserConfigRepository
from modelswitch.repositories.user_repository import UserRepository
from modelswitch.schemas.provider import ProviderInfo
from modelswitch.schemas.switch import SwitchHistoryResponse, SwitchRequest, SwitchResult
from modelswitch.services.api_key_service import ApiKeyService
from modelswitch.services.config_service import ConfigService
from modelswitch.services.settings_writer_service import SettingsWriterService
from modelswitch.utils.encryption import SecretVault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationOutcome:
    """变更阶段的结果：ok=False 时 error 为可读的错误信息"""

    ok: bool
    error: Optional[str] = None

    @classmethod
    def succeeded(cls) -> "MutationOutcome":
        return cls(ok=True)

    @classmethod
    def failed(cls, error: str) -> "MutationOutcome":
        return cls(ok=False, error=error)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _info(provider: Optional[ModelProvider]) -> Optional[ProviderInfo]:
    if provider is None:
        return None
    return ProviderInfo.model_validate(provider)


class SwitchService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        settings_writer: Optional[SettingsWriterService] = None,
        lock: Optional[SwitchLock] = None,
        vault: Optional[SecretVault] = None,
    ):
        self.db = db
        self.users = UserRepository(db)
        self.providers = ModelProviderRepository(db)
        self.configs = UserConfigRepository(db)
        self.histories = SwitchHistoryRepository(db)
        self.config_service = ConfigService(db)
        self.api_key_service = ApiKeyService(db, vault=vault)
        self.settings_writer = settings_writer or SettingsWriterService(db, vault=vault, lock=lock)

    async def switch(self, user_id: int, request: SwitchRequest) -> SwitchResult:
        return await self.switch_to_provider(
            user_id,
            request.provider_code,
            SwitchType.MANUAL,
            client_info=request.client_info,
        )

    async def switch_to_provider(
        self,
        user_id: int,
        provider_code: str,
        switch_type: SwitchType,
        ai_prompt: Optional[str] = None,
        client_info: Optional[str] = None,
    ) -> SwitchResult:
        if await self.users.get_by_id(user_id) is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND")

        target = await self.providers.get_by_code(provider_code)
        if target is None:
            raise NotFoundError(f"Provider not found: {provider_code}", error_code="PROVIDER_NOT_FOUND")
        if not target.is_active:
            raise ProviderInactiveError(provider_code)

        config = await self.configs.get_by_user_id(user_id)
        if config is None:
            raise NotFoundError("Config not found", error_code="CONFIG_NOT_FOUND")

        previous = config.current_provider
        if previous is not None and previous.id == target.id:
            return SwitchResult(
                success=True,
                message=f"Already using {target.name}",
                current_provider=_info(target),
                switched_at=_now(),
            )

        # 保存点回滚后 ORM 对象会过期，这里先取出后面要用的值
        previous_info = _info(previous)
        target_info = _info(target)
        previous_id = previous.id if previous else None

        await self.config_service.create_backup(
            user_id,
            config,
            BackupType.AUTO_BEFORE_SWITCH,
            f"Auto backup before switching to {target_info.name}",
        )

        outcome = await self._apply(user_id, config, target, target_info.code)

        await self.histories.create(
            user_id=user_id,
            from_provider_id=previous_id,
            to_provider_id=target_info.id,
            switch_type=switch_type.value,
            ai_prompt=ai_prompt,
            success=outcome.ok,
            error_message=outcome.error,
            client_info=client_info,
        )

        if outcome.ok:
            logger.info(
                "Switched user %s from %s to %s",
                user_id,
                previous_info.code if previous_info else None,
                target_info.code,
            )
            return SwitchResult(
                success=True,
                message=f"Successfully switched to {target_info.name}",
                previous_provider=previous_info,
                current_provider=target_info,
                switched_at=_now(),
            )

        return SwitchResult(
            success=False,
            message=f"Failed to switch: {outcome.error}",
            previous_provider=previous_info,
            current_provider=previous_info,
            switched_at=_now(),
        )

    async def _apply(self, user_id: int, config: UserConfig, target: ModelProvider, target_code: str) -> MutationOutcome:
        try:
            async with self.db.begin_nested():
                config.current_provider = target
                await self.configs.save(config)
                await self.api_key_service.mark_last_used(user_id, target.id)
                await self.settings_writer.write_to_settings(user_id, target)
        except Exception as e:
            logger.error("Switch failed for user %s -> %s: %s", user_id, target_code, e, exc_info=True)
            return MutationOutcome.failed(str(e) or type(e).__name__)
        return MutationOutcome.succeeded()

    async def list_history(self, user_id: int, page: int = 0, size: int = 20) -> Tuple[List[SwitchHistoryResponse], int]:
        page = max(page, 0)
        size = max(size, 1)
        rows = await self.histories.list_by_user_id(user_id=user_id, limit=size, offset=page * size)
        total = await self.histories.count_by_user_id(user_id)
        return [SwitchHistoryResponse.model_validate(r) for r in rows], total
