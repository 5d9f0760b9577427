"""
API 路由模块
"""
from modelswitch.api.routes.health import router as health_router
from modelswitch.api.routes.providers import router as providers_router
from modelswitch.api.routes.api_keys import router as api_keys_router
from modelswitch.api.routes.config import router as config_router
from modelswitch.api.routes.switch import router as switch_router
from modelswitch.api.routes.ai import router as ai_router

__all__ = [
    "health_router",
    "providers_router",
    "api_keys_router",
    "config_router",
    "switch_router",
    "ai_router",
]
