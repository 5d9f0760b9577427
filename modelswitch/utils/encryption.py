"""
API Key 加解密

使用 Fernet（cryptography）对称加密；密钥来自配置项 API_KEY_ENCRYPTION_KEY。
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from modelswitch.core.config import get_settings
from modelswitch.core.exceptions import EncryptionError

logger = logging.getLogger(__name__)


class SecretVault:
    def __init__(self, key: str):
        try:
            self._fernet = Fernet(key.encode("utf-8") if isinstance(key, str) else key)
        except (TypeError, ValueError) as e:
            raise EncryptionError("API_KEY_ENCRYPTION_KEY 不是合法的 Fernet key") from e

    def encrypt(self, plain_text: str) -> str:
        try:
            return self._fernet.encrypt(plain_text.encode("utf-8")).decode("utf-8")
        except (TypeError, AttributeError) as e:
            logger.error("加密失败: %s", type(e).__name__)
            raise EncryptionError("Failed to encrypt data") from e

    def decrypt(self, cipher_text: str) -> str:
        try:
            return self._fernet.decrypt(cipher_text.encode("utf-8")).decode("utf-8")
        except (InvalidToken, TypeError, AttributeError, UnicodeDecodeError) as e:
            logger.error("解密失败: %s", type(e).__name__)
            raise EncryptionError("Failed to decrypt data") from e

    @staticmethod
    def hint(plain_text: Optional[str]) -> str:
        """展示用提示：前4位...后4位；太短的 key 不暴露任何字符"""
        if plain_text is None or len(plain_text) < 8:
            return "***"
        return f"{plain_text[:4]}...{plain_text[-4:]}"


_vault: Optional[SecretVault] = None


def get_secret_vault() -> SecretVault:
    global _vault
    if _vault is None:
        _vault = SecretVault(get_settings().api_key_encryption_key)
    return _vault
