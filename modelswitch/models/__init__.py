"""
数据模型模块
导出所有数据模型以便其他模块使用
"""
from modelswitch.models.user import User
from modelswitch.models.model_provider import ModelProvider
from modelswitch.models.user_config import UserConfig
from modelswitch.models.config_backup import BackupType, ConfigBackup
from modelswitch.models.switch_history import SwitchHistory, SwitchType
from modelswitch.models.api_key import ProviderApiKey
from modelswitch.models.ai_conversation import AiConversation

__all__ = [
    "User",
    "ModelProvider",
    "UserConfig",
    "ConfigBackup",
    "BackupType",
    "SwitchHistory",
    "SwitchType",
    "ProviderApiKey",
    "AiConversation",
]
