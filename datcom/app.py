"""
Datcom 订餐系统后端服务 - 主应用入口
管理员发布每日菜单、售卖次数套餐，用户用套餐次数每天订一单

主要功能模块：
- 开发环境邮箱登录与JWT认证
- 每日菜单发布、锁定和订餐时间窗口
- 下单准入与计费套餐选择
- 批量确认扣次
- 套餐购买申请审核与邮件通知
- 营收与菜品统计

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import settings
from .core.database import db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError, DatabaseError

logger = logging.getLogger(__name__)


def configure_logging(level: str = None):
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时初始化数据库，失败时允许在运行时重试
    try:
        db_manager.init_database()
        logger.info("database initialized: %s", db_manager.db_path)
    except DatabaseError as e:
        logger.error("database initialization failed: %s", e.message)

    yield

    db_manager.close()


def create_app() -> FastAPI:
    """创建FastAPI应用"""
    configure_logging()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Datcom 订餐系统API",
        debug=settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        try:
            db_manager.fetch_value("SELECT 1")
            database = "connected"
        except DatabaseError as e:
            database = f"error: {e.message}"
        return {
            "status": "healthy" if database == "connected" else "unhealthy",
            "version": settings.api_version,
            "database": database
        }

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "Datcom 订餐系统API"
        }

    return app


# 应用实例
app = create_app()
