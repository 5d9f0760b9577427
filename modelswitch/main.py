"""
FastAPI 应用主文件
应用入口点和配置
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from modelswitch import __version__
from modelswitch.api.deps import get_chat_client_cache
from modelswitch.api.routes import (
    ai_router,
    api_keys_router,
    config_router,
    health_router,
    providers_router,
    switch_router,
)
from modelswitch.cache import close_redis, get_redis_client, init_redis
from modelswitch.core.config import get_settings
from modelswitch.core.exceptions import BaseAPIException
from modelswitch.db.session import close_db, get_engine, init_db

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# 创建模块级别的 logger
logger = logging.getLogger(__name__)


# ==================== 生命周期事件 ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    启动和关闭事件处理
    """
    logging.getLogger().setLevel(get_settings().log_level)

    # 初始化数据库连接
    try:
        logger.info("正在初始化数据库连接...")
        await init_db()
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✓ 数据库连接成功")
    except Exception as e:
        logger.error("✗ 数据库连接失败: %s", e)
        raise

    # 初始化 Redis 连接（可选）
    if get_redis_client() is not None:
        try:
            logger.info("正在初始化 Redis 连接...")
            await init_redis()
            if not await get_redis_client().ping():
                raise RuntimeError("PING 失败")
            logger.info("✓ Redis 连接成功")
        except Exception as e:
            logger.error("✗ Redis 连接失败: %s", e)
            raise
    else:
        logger.info("未配置 REDIS_URL，切换锁仅在进程内生效")

    logger.info("🚀 应用启动完成")

    yield

    # 关闭事件
    logger.info("正在关闭应用...")

    try:
        await get_chat_client_cache().clear()
    except Exception as e:
        logger.error("✗ 关闭上游客户端失败: %s", e)

    try:
        await close_db()
        logger.info("✓ 数据库连接已关闭")
    except Exception as e:
        logger.error("✗ 关闭数据库连接失败: %s", e)

    try:
        await close_redis()
        logger.info("✓ Redis 连接已关闭")
    except Exception as e:
        logger.error("✗ 关闭 Redis 连接失败: %s", e)

    logger.info("👋 应用已关闭")


# ==================== 创建 FastAPI 应用 ====================

def create_app() -> FastAPI:
    """
    创建并配置 FastAPI 应用

    Returns:
        配置好的 FastAPI 应用实例
    """
    settings = get_settings()

    # 生产环境禁用API文档
    docs_url = "/api/docs" if settings.is_development else None
    redoc_url = "/api/redoc" if settings.is_development else None
    openapi_url = "/api/openapi.json" if settings.is_development else None

    app = FastAPI(
        title="模型切换服务",
        description="管理 AI 模型提供商，并把当前提供商同步到本机 CLI 的 settings.json",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url
    )

    # ==================== CORS 配置 ====================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # 生产环境应该配置具体的域名
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== 注册路由 ====================

    app.include_router(health_router, prefix="/api")
    app.include_router(providers_router)
    app.include_router(api_keys_router)
    app.include_router(config_router)
    app.include_router(switch_router)
    app.include_router(ai_router)

    # ==================== 异常处理器 ====================

    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        """处理自定义 API 异常"""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理数据验证异常"""
        logger.warning("请求验证失败 - %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error_code": "VALIDATION_ERROR",
                "message": "数据验证失败",
                "details": exc.errors(),
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        """处理数据库异常"""
        logger.error("数据库异常: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error_code": "DATABASE_ERROR",
                "message": "数据库操作失败",
                "details": {"error": str(exc)}
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """处理通用异常"""
        logger.error("未处理的异常: %s: %s", type(exc).__name__, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error_code": "INTERNAL_SERVER_ERROR",
                "message": "服务器内部错误",
                "details": {"error": str(exc), "type": type(exc).__name__}
            }
        )

    # ==================== 根路径 ====================

    @app.get("/", tags=["根路径"])
    async def root():
        """根路径欢迎信息"""
        return {
            "message": "模型切换服务",
            "version": __version__,
            "docs": docs_url,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "modelswitch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().is_development,
    )
