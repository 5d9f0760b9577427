"""
业务异常定义

所有异常都继承 BaseAPIException，由 main.py 中注册的异常处理器统一转换为 JSON 响应。
"""
from typing import Any, Dict, Optional

from fastapi import status


class BaseAPIException(Exception):
    """API 异常基类"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(BaseAPIException):
    """用户/提供商/配置/备份不存在"""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
        )


class ConflictError(BaseAPIException):
    """重复创建（例如 provider code 已存在）"""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
        )


class ForbiddenError(BaseAPIException):
    """无权操作（修改内置提供商、恢复他人备份等）"""

    def __init__(self, message: str, error_code: str = "FORBIDDEN"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=error_code,
        )


class ProviderInactiveError(BaseAPIException):
    def __init__(self, provider_code: str):
        super().__init__(
            message=f"Provider is inactive: {provider_code}",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="PROVIDER_INACTIVE",
            details={"provider_code": provider_code},
        )


class EncryptionError(BaseAPIException):
    """加解密失败（与提供商/配置错误区分）"""

    def __init__(self, message: str = "Failed to encrypt/decrypt API key"):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="ENCRYPTION_ERROR",
        )


class ExternalServiceError(BaseAPIException):
    """外部依赖失败：settings.json 读写、上游 HTTP 调用"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class UpstreamTimeoutError(ExternalServiceError):
    def __init__(self, message: str = "Upstream request timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            details=details,
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            error_code="UPSTREAM_TIMEOUT",
        )
