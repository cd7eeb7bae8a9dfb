"""
统一错误处理模块
提供标准化的错误响应格式和错误处理中间件

主要功能：
- 统一的错误响应格式
- 自动异常捕获和日志记录
- 错误码到HTTP状态码的唯一映射表
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .database import db_manager
from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": jsonable_encoder(self.details)
        }

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.http_status, content=self.to_dict())


class ErrorHandler:
    """全局错误处理器"""

    # 错误代码到HTTP状态码的映射
    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 400,
        "BUSINESS_RULE_VIOLATION": 400,
        "AUTHENTICATION_REQUIRED": 401,
        "INVALID_TOKEN": 401,
        "ADMIN_REQUIRED": 403,
        "INVALID_CREDENTIALS": 401,
        "DEV_LOGIN_DISABLED": 403,
        "USER_BLOCKED": 403,
        "USER_NOT_VERIFIED": 403,
        "RESOURCE_NOT_FOUND": 404,
        "CONCURRENCY_CONFLICT": 409,
        "DATABASE_ERROR": 500,
        "INTERNAL_ERROR": 500,

        # 不存在
        "USER_NOT_FOUND": 404,
        "MENU_NOT_FOUND": 404,
        "PACKAGE_NOT_FOUND": 404,
        "ORDER_NOT_FOUND": 404,
        "REQUEST_NOT_FOUND": 404,

        # 下单相关
        "MENU_LOCKED": 400,
        "INVALID_ORDER_TYPE": 400,
        "INVALID_MENU_ITEM": 400,
        "NO_MATCHING_PACKAGE": 400,
        "NOT_ENOUGH_TURNS": 400,

        # 套餐与购买申请
        "PACKAGE_UNAVAILABLE": 400,
        "PACKAGE_IN_USE": 400,
        "REQUEST_ALREADY_EXISTS": 400,
        "REQUEST_ALREADY_PROCESSED": 400,

        # 注册与账号管理
        "EMAIL_EXISTS": 400,
        "INVALID_OTP": 400,
        "CANNOT_BLOCK_ADMIN": 400,
    }

    @classmethod
    def status_for(cls, error_code: str) -> int:
        return cls.ERROR_CODE_STATUS_MAP.get(error_code, 400)

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        """处理应用业务异常"""
        http_status = cls.status_for(error.error_code)
        if http_status >= 500:
            logger.error("application error %s: %s", error.error_code, error.message)
        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理FastAPI HTTP异常"""
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    @classmethod
    def handle_validation_error(cls, error: Exception) -> ErrorResponse:
        """处理Pydantic验证错误"""
        errors = jsonable_encoder(error.errors()) if hasattr(error, "errors") else str(error)
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="请求参数验证失败",
            details={"validation_errors": errors},
            http_status=422
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception) -> ErrorResponse:
        """处理未知异常"""
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc()
        }
        logger.error("unhandled error: %s\n%s", error, error_details["traceback"])
        cls._log_system_error(error_details)

        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="系统内部错误，请稍后重试",
            details={"error_type": type(error).__name__},
            http_status=500
        )

    @classmethod
    def _log_system_error(cls, error_details: Dict[str, Any]):
        """记录系统错误到数据库"""
        try:
            db_manager.log_operation("system_error", error_details)
        except BaseApplicationError as e:
            logger.error("failed to write system_error log: %s", e.message)


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    return ErrorHandler.handle_application_error(exc).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return ErrorHandler.handle_unknown_error(exc).to_json_response()


def create_success_response(data: Any = None, message: str = "操作成功") -> Dict[str, Any]:
    """创建标准成功响应"""
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = data

    return response
