"""
提供商 API Key 服务

明文只在 set/get_decrypted 的调用栈中出现；落库前用 Fernet 加密，对外只返回 key_hint。
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.core.exceptions import ForbiddenError, NotFoundError
from modelswitch.models.api_key import ProviderApiKey
from modelswitch.models.model_provider import ModelProvider
from modelswitch.repositories.api_key_repository import ProviderApiKeyRepository
from modelswitch.repositories.model_provider_repository import ModelProviderRepository
from modelswitch.schemas.api_key import ApiKeyInfo
from modelswitch.utils.encryption import SecretVault, get_secret_vault

logger = logging.getLogger(__name__)


def _to_info(record: ProviderApiKey) -> ApiKeyInfo:
    return ApiKeyInfo(
        id=record.id,
        provider_id=record.provider_id,
        provider_code=record.provider.code,
        provider_name=record.provider.name,
        key_hint=record.key_hint,
        is_valid=record.is_valid,
        last_used_at=record.last_used_at,
        expires_at=record.expires_at,
        created_at=record.created_at,
    )


class ApiKeyService:
    def __init__(self, db: AsyncSession, vault: Optional[SecretVault] = None):
        self.db = db
        self.keys = ProviderApiKeyRepository(db)
        self.providers = ModelProviderRepository(db)
        self._vault = vault

    @property
    def vault(self) -> SecretVault:
        if self._vault is None:
            self._vault = get_secret_vault()
        return self._vault

    async def _require_provider(self, provider_code: str) -> ModelProvider:
        provider = await self.providers.get_by_code(provider_code)
        if provider is None:
            raise NotFoundError(f"Provider not found: {provider_code}", error_code="PROVIDER_NOT_FOUND")
        return provider

    async def set_api_key(self, user_id: int, provider_code: str, api_key: str) -> ApiKeyInfo:
        provider = await self._require_provider(provider_code)
        plain = api_key.strip()
        record = await self.keys.upsert(
            user_id=user_id,
            provider_id=provider.id,
            encrypted_key=self.vault.encrypt(plain),
            key_hint=SecretVault.hint(plain),
        )
        logger.info("Set API key for user: %s, provider: %s", user_id, provider_code)
        return _to_info(record)

    async def list_api_keys(self, user_id: int) -> List[ApiKeyInfo]:
        return [_to_info(r) for r in await self.keys.list_by_user_id(user_id)]

    async def has_api_key(self, user_id: int, provider_id: int) -> bool:
        return await self.keys.exists(user_id, provider_id)

    async def get_decrypted_api_key(self, user_id: int, provider_code: str) -> str:
        record = await self.keys.get_by_user_and_provider_code(user_id, provider_code)
        if record is None:
            raise NotFoundError(f"API key not found for provider: {provider_code}", error_code="API_KEY_NOT_FOUND")
        if not record.is_valid:
            raise ForbiddenError("API key is invalid", error_code="API_KEY_INVALID")
        return self.vault.decrypt(record.encrypted_key)

    async def delete_api_key(self, user_id: int, provider_code: str) -> None:
        provider = await self._require_provider(provider_code)
        if not await self.keys.delete(user_id, provider.id):
            raise NotFoundError(f"API key not found for provider: {provider_code}", error_code="API_KEY_NOT_FOUND")
        logger.info("Deleted API key for user: %s, provider: %s", user_id, provider_code)

    async def mark_last_used(self, user_id: int, provider_id: int) -> bool:
        """尽力而为：没有 Key 或更新失败都不影响调用方（失败只回滚自己的保存点）"""
        try:
            async with self.db.begin_nested():
                return await self.keys.touch_last_used(user_id, provider_id, datetime.now(timezone.utc))
        except Exception as e:
            logger.warning("更新 API Key 最近使用时间失败(已忽略): user_id=%s provider_id=%s error=%s", user_id, provider_id, e)
            return False
