"""
配置管理模块
使用 pydantic-settings 从环境变量加载配置
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # 应用配置
    app_env: str = Field(default="development", description="应用环境")
    log_level: str = Field(default="INFO", description="日志级别")

    # 数据库配置
    database_url: str = Field(..., description="数据库连接 URL（postgresql+asyncpg://...）")

    # Redis 配置（可选：配置后切换时使用跨进程锁）
    redis_url: Optional[str] = Field(default=None, description="Redis 连接 URL")

    # JWT 配置（令牌由认证服务签发，这里只做校验）
    jwt_secret_key: str = Field(..., description="JWT 密钥")
    jwt_algorithm: str = Field(default="HS256", description="JWT 算法")

    # 凭证/密钥加密（Fernet key）
    api_key_encryption_key: str = Field(
        ...,
        description="Fernet 加密密钥：用于加密存储各提供商 API Key（不要随意更换，否则历史密文无法解密）"
    )

    # CLI settings.json 同步
    cli_settings_path: str = Field(
        default=str(Path.home() / ".claude" / "settings.json"),
        description="外部 CLI 读取的 settings.json 路径",
    )
    api_timeout_ms: int = Field(
        default=600000,
        description="写入 settings.json 的 API_TIMEOUT_MS",
    )
    official_provider_code: str = Field(
        default="claude",
        description="官方提供商 code：切换到它时只清理第三方连接参数",
    )
    switch_lock_ttl_seconds: int = Field(
        default=30,
        description="Redis 切换锁过期时间（秒）",
    )

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """验证应用环境"""
        allowed_envs = ["development", "staging", "production", "test"]
        if v not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别"""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("api_timeout_ms", "switch_lock_ttl_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.app_env == "production"


# 全局配置实例
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    获取配置实例
    使用单例模式确保配置只加载一次
    """
    global settings
    if settings is None:
        settings = Settings()
    return settings
