"""
自定义异常类
所有业务错误都是 (error_code, message, details) 三元组，HTTP状态码由
error_handler.ErrorHandler.ERROR_CODE_STATUS_MAP 统一映射
"""

from typing import Any, Dict


class BaseApplicationError(Exception):
    """应用基础异常类"""

    default_code: str = "INTERNAL_ERROR"
    default_message: str = "系统内部错误"

    def __init__(
        self,
        message: str = None,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""
    default_code = "DATABASE_ERROR"
    default_message = "数据库操作失败"


class ConcurrencyError(BaseApplicationError):
    """并发控制错误"""
    default_code = "CONCURRENCY_CONFLICT"
    default_message = "系统繁忙，请稍后重试"


class IntegrityConflictError(DatabaseError):
    """唯一约束冲突"""
    default_code = "CONCURRENCY_CONFLICT"
    default_message = "数据已被并发修改"


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    default_code = "AUTHENTICATION_REQUIRED"
    default_message = "缺少认证令牌"


class InvalidTokenError(AuthenticationError):
    default_code = "INVALID_TOKEN"
    default_message = "令牌无效或已过期"


class AuthorizationError(BaseApplicationError):
    """授权相关异常"""
    default_code = "ADMIN_REQUIRED"
    default_message = "需要管理员权限"


class InvalidCredentialsError(AuthenticationError):
    default_code = "INVALID_CREDENTIALS"
    default_message = "邮箱或密码错误"


class DevLoginDisabledError(AuthorizationError):
    """开发登录仅在调试模式下可用"""
    default_code = "DEV_LOGIN_DISABLED"
    default_message = "开发登录未启用"


class UserBlockedError(AuthorizationError):
    default_code = "USER_BLOCKED"
    default_message = "账号已被封禁"


class UserNotVerifiedError(AuthorizationError):
    default_code = "USER_NOT_VERIFIED"
    default_message = "账号尚未完成邮箱验证"


class ValidationError(BaseApplicationError):
    """数据验证异常"""
    default_code = "VALIDATION_ERROR"
    default_message = "请求参数验证失败"


class BusinessLogicError(BaseApplicationError):
    """业务逻辑异常"""
    default_code = "BUSINESS_RULE_VIOLATION"


class NotFoundError(BusinessLogicError):
    """资源不存在"""
    default_code = "RESOURCE_NOT_FOUND"
    default_message = "资源不存在"


class UserNotFoundError(NotFoundError):
    default_code = "USER_NOT_FOUND"
    default_message = "用户不存在"


class MenuNotFoundError(NotFoundError):
    default_code = "MENU_NOT_FOUND"
    default_message = "找不到菜单"


class PackageNotFoundError(NotFoundError):
    default_code = "PACKAGE_NOT_FOUND"
    default_message = "找不到套餐"


class OrderNotFoundError(NotFoundError):
    default_code = "ORDER_NOT_FOUND"
    default_message = "找不到订单"


class RequestNotFoundError(NotFoundError):
    default_code = "REQUEST_NOT_FOUND"
    default_message = "找不到购买申请"


class MenuLockedError(BusinessLogicError):
    """菜单已锁定或不在订餐时间内"""
    default_code = "MENU_LOCKED"
    default_message = "菜单已锁定，无法订餐"


class InvalidOrderTypeError(BusinessLogicError):
    default_code = "INVALID_ORDER_TYPE"
    default_message = "订餐类型无效"


class InvalidMenuItemError(BusinessLogicError):
    default_code = "INVALID_MENU_ITEM"
    default_message = "菜品不属于今日菜单"


class NoMatchingPackageError(BusinessLogicError):
    default_code = "NO_MATCHING_PACKAGE"
    default_message = "没有可用的套餐"


class NotEnoughTurnsError(BusinessLogicError):
    default_code = "NOT_ENOUGH_TURNS"
    default_message = "剩余次数不足"


class PackageUnavailableError(BusinessLogicError):
    default_code = "PACKAGE_UNAVAILABLE"
    default_message = "套餐已不可用"


class PackageInUseError(BusinessLogicError):
    default_code = "PACKAGE_IN_USE"
    default_message = "套餐已被购买引用，无法修改"


class RequestAlreadyExistsError(BusinessLogicError):
    default_code = "REQUEST_ALREADY_EXISTS"
    default_message = "您已有该套餐的待处理购买申请"


class RequestAlreadyProcessedError(BusinessLogicError):
    default_code = "REQUEST_ALREADY_PROCESSED"
    default_message = "申请已被处理"


class EmailExistsError(BusinessLogicError):
    default_code = "EMAIL_EXISTS"
    default_message = "该邮箱已被注册"


class InvalidOtpError(BusinessLogicError):
    default_code = "INVALID_OTP"
    default_message = "验证码错误或已过期"


class CannotBlockAdminError(BusinessLogicError):
    default_code = "CANNOT_BLOCK_ADMIN"
    default_message = "不能封禁管理员账号"
