"""
本机 settings.json 读取与回写数据库

用户可能直接手改 settings.json；这里按 ANTHROPIC_BASE_URL 识别提供商，
再把 base_url / 模型回写到对应的提供商记录上。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.core.config import get_settings
from modelswitch.core.exceptions import ExternalServiceError
from modelswitch.repositories.model_provider_repository import ModelProviderRepository
from modelswitch.schemas.config import LocalConfigResponse
from modelswitch.services.settings_writer_service import (
    ENV_API_KEY,
    ENV_API_TIMEOUT,
    ENV_AUTH_TOKEN,
    ENV_BASE_URL,
    ENV_GROUP,
    ENV_MODEL,
    ENV_SMALL_FAST_MODEL,
    load_settings_document,
)

logger = logging.getLogger(__name__)

BASE_URL_TO_PROVIDER = (
    ("api.anthropic.com", "claude"),
    ("api.deepseek.com", "deepseek"),
    ("open.bigmodel.cn", "zhipu"),
    ("openrouter.ai", "openrouter"),
)
DEFAULT_PROVIDER_CODE = "claude"


@dataclass
class LocalConfig:
    provider_code: str
    api_timeout: int
    model: Optional[str] = None
    small_model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    exists: bool = False


def detect_provider(base_url: Optional[str]) -> str:
    lower = (base_url or "").lower()
    if not lower:
        return DEFAULT_PROVIDER_CODE
    for host, code in BASE_URL_TO_PROVIDER:
        if host in lower:
            return code
    return DEFAULT_PROVIDER_CODE


def _text(env: Dict[str, Any], key: str) -> str:
    value = env.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _int(env: Dict[str, Any], key: str, default: int) -> int:
    value = env.get(key)
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class LocalConfigService:
    def __init__(self, db: AsyncSession, settings_path: Union[str, Path, None] = None):
        settings = get_settings()
        self.db = db
        self.providers = ModelProviderRepository(db)
        self.settings_path = Path(settings_path or settings.cli_settings_path).expanduser()
        self.default_timeout = settings.api_timeout_ms

    def read_local_config(self) -> LocalConfig:
        """读取失败时回落到官方默认配置，不抛异常"""
        if not self.settings_path.exists():
            logger.warning("Local config file not found: %s", self.settings_path)
            return LocalConfig(DEFAULT_PROVIDER_CODE, self.default_timeout)

        try:
            root = load_settings_document(self.settings_path)
        except ExternalServiceError as e:
            logger.error("Failed to read local config: %s", e.message)
            return LocalConfig(DEFAULT_PROVIDER_CODE, self.default_timeout, exists=True)

        env = root.get(ENV_GROUP)
        if not isinstance(env, dict):
            return LocalConfig(DEFAULT_PROVIDER_CODE, self.default_timeout, exists=True)

        base_url = _text(env, ENV_BASE_URL)
        model = _text(env, ENV_MODEL)
        small_model = _text(env, ENV_SMALL_FAST_MODEL)
        api_key = _text(env, ENV_API_KEY) or _text(env, ENV_AUTH_TOKEN)
        provider_code = detect_provider(base_url)
        logger.info("Read local config: provider=%s, model=%s", provider_code, model)

        return LocalConfig(
            provider_code=provider_code,
            api_timeout=_int(env, ENV_API_TIMEOUT, self.default_timeout),
            model=model or None,
            small_model=small_model or None,
            api_key=api_key or None,
            base_url=base_url or None,
            exists=True,
        )

    def describe_local_config(self) -> LocalConfigResponse:
        local = self.read_local_config()
        return LocalConfigResponse(
            settings_path=str(self.settings_path),
            exists=local.exists,
            provider_code=local.provider_code,
            base_url=local.base_url,
            model_name=local.model,
            model_name_small=local.small_model,
            has_auth_token=bool(local.api_key),
            api_timeout=local.api_timeout,
        )

    async def sync_local_config_to_database(self) -> bool:
        """返回是否有字段被更新"""
        local = self.read_local_config()
        provider = await self.providers.get_by_code(local.provider_code)
        if provider is None:
            return False

        updated = False
        if local.base_url and local.base_url != provider.base_url:
            provider.base_url = local.base_url
            updated = True
        if local.model and local.model != provider.model_name:
            provider.model_name = local.model
            updated = True
        if local.small_model and local.small_model != provider.model_name_small:
            provider.model_name_small = local.small_model
            updated = True

        if updated:
            await self.providers.save(provider)
            logger.info("Synced local config to database for provider: %s, model: %s", local.provider_code, local.model)
        else:
            logger.info("Local config already in sync with database for provider: %s", local.provider_code)
        return updated
