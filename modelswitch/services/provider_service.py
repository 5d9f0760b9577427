"""
模型提供商服务

包含提供商的查询/创建/修改，以及连接测试（向 <base>/v1/messages 发一个最小请求）。
修改提供商配置只更新数据库，settings.json 在下一次切换时才会同步。
"""

from __future__ import annotations

import json
import logging
import time
from typing import List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from modelswitch.models.model_provider import ModelProvider
from modelswitch.repositories.api_key_repository import ProviderApiKeyRepository
from modelswitch.repositories.model_provider_repository import ModelProviderRepository
from modelswitch.schemas.provider import (
    ProviderConfigUpdate,
    ProviderCreate,
    ProviderInfo,
    ProviderTestRequest,
    ProviderTestResult,
    ProviderUpdate,
)
from modelswitch.utils.encryption import SecretVault, get_secret_vault
from modelswitch.utils.openrouter_compat import (
    build_messages_url,
    extract_error_message,
    normalize_api_key,
    normalize_base_url,
)

logger = logging.getLogger(__name__)

CUSTOM_PROVIDER_SORT_ORDER = 100
ANTHROPIC_VERSION = "2023-06-01"
TEST_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class ProviderService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        vault: Optional[SecretVault] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.providers = ModelProviderRepository(db)
        self.api_keys = ProviderApiKeyRepository(db)
        self._vault = vault
        self._transport = transport

    @property
    def vault(self) -> SecretVault:
        if self._vault is None:
            self._vault = get_secret_vault()
        return self._vault

    async def _require(self, code: str) -> ModelProvider:
        provider = await self.providers.get_by_code(code)
        if provider is None:
            raise NotFoundError(f"Provider not found: {code}", error_code="PROVIDER_NOT_FOUND")
        return provider

    async def list_providers(self) -> List[ProviderInfo]:
        return [ProviderInfo.model_validate(p) for p in await self.providers.list_active()]

    async def list_providers_for_user(self, user_id: int) -> List[ProviderInfo]:
        out: List[ProviderInfo] = []
        for provider in await self.providers.list_active():
            info = ProviderInfo.model_validate(provider)
            info.has_api_key = await self.api_keys.exists(user_id, provider.id)
            out.append(info)
        return out

    async def get_provider(self, code: str) -> ProviderInfo:
        return ProviderInfo.model_validate(await self._require(code))

    async def create_custom_provider(self, user_id: int, request: ProviderCreate) -> ProviderInfo:
        code = request.code.strip()
        if await self.providers.exists_by_code(code):
            raise ConflictError(f"Provider already exists: {code}", error_code="PROVIDER_ALREADY_EXISTS")

        provider = await self.providers.create(
            code=code,
            name=request.name,
            description=request.description,
            base_url=request.base_url,
            model_name=request.model_name,
            model_name_small=request.model_name_small,
            icon_url=request.icon_url,
            is_builtin=False,
            is_active=True,
            sort_order=CUSTOM_PROVIDER_SORT_ORDER,
        )
        logger.info("Created custom provider: %s for user: %s", provider.code, user_id)
        return ProviderInfo.model_validate(provider)

    async def update_provider(self, user_id: int, code: str, request: ProviderUpdate) -> ProviderInfo:
        provider = await self._require(code)
        if provider.is_builtin:
            raise ForbiddenError("Cannot modify built-in providers")

        # code / is_builtin 不在可修改字段内
        for field in ("name", "description", "base_url", "model_name", "model_name_small", "is_active", "sort_order", "icon_url"):
            value = getattr(request, field)
            if value is not None:
                setattr(provider, field, value)

        provider = await self.providers.save(provider)
        logger.info("Updated provider: %s by user: %s", provider.code, user_id)
        return ProviderInfo.model_validate(provider)

    async def update_provider_config(self, user_id: int, code: str, request: ProviderConfigUpdate) -> ProviderInfo:
        provider = await self._require(code)

        if request.base_url:
            provider.base_url = request.base_url
        if request.model_name:
            provider.model_name = request.model_name
        if request.model_name_small is not None:
            provider.model_name_small = request.model_name_small or None

        provider = await self.providers.save(provider)
        logger.info("Updated provider config: %s by user: %s, model: %s", provider.code, user_id, provider.model_name)
        return ProviderInfo.model_validate(provider)

    async def test_provider_connection(
        self,
        user_id: int,
        code: str,
        request: Optional[ProviderTestRequest] = None,
    ) -> ProviderTestResult:
        provider = await self._require(code)
        request = request or ProviderTestRequest()

        base_url = request.base_url or provider.base_url
        model_name = request.model_name or provider.model_name

        api_key = request.api_key
        if not api_key:
            stored = await self.api_keys.get_by_user_and_provider_id(user_id, provider.id)
            if stored is not None:
                api_key = self.vault.decrypt(stored.encrypted_key)

        if not api_key:
            return ProviderTestResult(success=False, message="API Key 未配置")

        return await self.perform_test_request(base_url, model_name, api_key)

    async def perform_test_request(self, base_url: str, model_name: Optional[str], api_key: str) -> ProviderTestResult:
        start = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        url = build_messages_url(normalize_base_url(base_url))
        payload = {
            "model": model_name,
            "max_tokens": 10,
            "messages": [{"role": "user", "content": "Hi"}],
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-key": normalize_api_key(api_key),
            "anthropic-version": ANTHROPIC_VERSION,
        }

        try:
            async with httpx.AsyncClient(timeout=TEST_TIMEOUT, transport=self._transport) as client:
                response = await client.post(url, content=json.dumps(payload), headers=headers)
        except httpx.TimeoutException:
            return ProviderTestResult(success=False, message="连接超时，请检查网络或 Base URL", response_time_ms=elapsed())
        except httpx.ConnectError:
            return ProviderTestResult(success=False, message="无法连接到服务器，请检查 Base URL", response_time_ms=elapsed())
        except Exception as e:
            logger.error("Test connection failed: %s", e)
            return ProviderTestResult(success=False, message=f"测试失败: {e}", response_time_ms=elapsed())

        status_code = response.status_code
        if 200 <= status_code < 300:
            return ProviderTestResult(
                success=True,
                message="连接成功",
                model_name=model_name,
                response_time_ms=elapsed(),
                status_code=status_code,
            )
        if status_code == 401:
            message = "API Key 无效"
        elif status_code == 404:
            message = "模型不存在或 Base URL 错误"
        else:
            message = "请求失败: " + extract_error_message(response.text, limit=100, default="未知错误")
        return ProviderTestResult(success=False, message=message, response_time_ms=elapsed(), status_code=status_code)
