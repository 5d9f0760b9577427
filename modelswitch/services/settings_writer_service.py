"""
settings.json 同步服务

把当前提供商的连接参数写入外部 CLI 读取的 settings.json（默认 ~/.claude/settings.json）。

约定：
- 只改 env 分组里的 5 个连接键 + API_TIMEOUT_MS，其它键原样保留
- 切换到官方提供商时只清理连接键，让 CLI 回到默认配置
- 覆盖前把旧文件复制为 <path>.backup.<时间戳>
- 读取/解析/写入失败统一抛 ExternalServiceError，不吞掉
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from modelswitch.cache.switch_lock import SwitchLock
from modelswitch.core.config import get_settings
from modelswitch.core.exceptions import ExternalServiceError
from modelswitch.models.model_provider import ModelProvider
from modelswitch.repositories.api_key_repository import ProviderApiKeyRepository
from modelswitch.utils.encryption import SecretVault, get_secret_vault

logger = logging.getLogger(__name__)

ENV_GROUP = "env"
ENV_BASE_URL = "ANTHROPIC_BASE_URL"
ENV_API_KEY = "ANTHROPIC_API_KEY"
ENV_AUTH_TOKEN = "ANTHROPIC_AUTH_TOKEN"
ENV_MODEL = "ANTHROPIC_MODEL"
ENV_SMALL_FAST_MODEL = "ANTHROPIC_SMALL_FAST_MODEL"
ENV_API_TIMEOUT = "API_TIMEOUT_MS"

PROVIDER_ENV_KEYS = (ENV_BASE_URL, ENV_API_KEY, ENV_AUTH_TOKEN, ENV_MODEL, ENV_SMALL_FAST_MODEL)


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    """<path>.backup.2026-01-02T03-04-05.123456Z"""
    instant = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = instant.strftime("%Y-%m-%dT%H:%M:%S.%fZ").replace(":", "-")
    return Path(f"{path}.backup.{stamp}")


def load_settings_document(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ExternalServiceError(f"读取 settings.json 失败: {e}", details={"path": str(path)}) from e
    if not content.strip():
        return {}
    try:
        root = json.loads(content)
    except ValueError as e:
        raise ExternalServiceError(f"settings.json 不是合法 JSON: {e}", details={"path": str(path)}) from e
    if not isinstance(root, dict):
        raise ExternalServiceError("settings.json 根节点必须是对象", details={"path": str(path)})
    return root


def apply_provider_env(
    root: Dict[str, Any],
    provider: ModelProvider,
    *,
    auth_token: Optional[str],
    api_timeout_ms: int,
    official_code: str,
) -> Dict[str, Any]:
    env = root.get(ENV_GROUP)
    if env is None:
        env = {}
        root[ENV_GROUP] = env
    elif not isinstance(env, dict):
        raise ExternalServiceError("settings.json 中 env 必须是对象")

    for key in PROVIDER_ENV_KEYS:
        env.pop(key, None)

    if provider.code == official_code:
        logger.info("写入官方配置：仅清理第三方连接参数")
    else:
        env[ENV_BASE_URL] = provider.base_url
        if provider.model_name:
            env[ENV_MODEL] = provider.model_name
        if provider.model_name_small:
            env[ENV_SMALL_FAST_MODEL] = provider.model_name_small
        if auth_token:
            env[ENV_AUTH_TOKEN] = auth_token

    env[ENV_API_TIMEOUT] = api_timeout_ms
    return root


def write_settings_document(path: Path, root: Dict[str, Any]) -> Optional[Path]:
    """先备份再原子替换；返回备份路径（首次写入时为 None）"""
    backup_path: Optional[Path] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            backup_path = backup_path_for(path)
            shutil.copy2(path, backup_path)
            logger.info("已备份 settings.json: %s", backup_path)

        payload = json.dumps(root, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=".settings.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise ExternalServiceError(f"写入 settings.json 失败: {e}", details={"path": str(path)}) from e
    return backup_path


class SettingsWriterService:
    def __init__(
        self,
        db: AsyncSession,
        *,
        settings_path: Union[str, Path, None] = None,
        vault: Optional[SecretVault] = None,
        lock: Optional[SwitchLock] = None,
    ):
        settings = get_settings()
        self.db = db
        self.api_keys = ProviderApiKeyRepository(db)
        self.settings_path = Path(settings_path or settings.cli_settings_path).expanduser()
        self.vault = vault
        self.lock = lock
        self.api_timeout_ms = settings.api_timeout_ms
        self.official_code = settings.official_provider_code

    def _vault(self) -> SecretVault:
        if self.vault is None:
            self.vault = get_secret_vault()
        return self.vault

    @asynccontextmanager
    async def _hold(self) -> AsyncIterator[None]:
        if self.lock is None:
            yield
            return
        async with self.lock.hold(str(self.settings_path)):
            yield

    async def _auth_token(self, user_id: int, provider: ModelProvider) -> Optional[str]:
        if provider.code == self.official_code:
            return None
        record = await self.api_keys.get_by_user_and_provider_id(user_id, provider.id)
        if record is None:
            return None
        return self._vault().decrypt(record.encrypted_key)

    async def write_to_settings(self, user_id: int, provider: ModelProvider) -> Path:
        auth_token = await self._auth_token(user_id, provider)
        async with self._hold():
            root = load_settings_document(self.settings_path)
            apply_provider_env(
                root,
                provider,
                auth_token=auth_token,
                api_timeout_ms=self.api_timeout_ms,
                official_code=self.official_code,
            )
            write_settings_document(self.settings_path, root)

        logger.info("settings.json 已更新: user_id=%s provider=%s", user_id, provider.code)
        return self.settings_path
