"""
安全相关功能
JWT 令牌签发与校验、FastAPI 身份依赖，以及密码和注册验证码的哈希

令牌载荷：user_id / role / email，业务层直接信任令牌中的身份
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import settings
from ..models.user import CurrentUser, UserRole
from .exceptions import AuthenticationError, AuthorizationError, InvalidTokenError

logger = logging.getLogger(__name__)

PASSWORD_SCHEME = "pbkdf2_sha256"


class SecurityManager:
    """安全管理器"""

    def __init__(self, secret_key: str = None, algorithm: str = None, expire_hours: int = None):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_hours = expire_hours or settings.jwt_expire_hours

    def create_jwt_token(self, user_id: int, role: str = UserRole.USER.value,
                         email: Optional[str] = None,
                         additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "role": role,
            "email": email,
            "exp": now + timedelta(hours=self.expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("令牌已过期")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"令牌无效: {e}")

    def get_user_from_token(self, token: str) -> CurrentUser:
        """从token中提取身份"""
        payload = self.decode_jwt_token(token)
        if payload.get("user_id") is None:
            raise InvalidTokenError("令牌缺少 user_id")
        role = payload.get("role") or UserRole.USER.value
        if role not in (UserRole.USER.value, UserRole.ADMIN.value):
            raise InvalidTokenError(f"未知角色: {role}")
        return CurrentUser(user_id=int(payload["user_id"]), role=role, email=payload.get("email"))


# 全局安全管理器实例
security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> CurrentUser:
    """从Authorization header中提取并验证身份"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return security_manager.get_user_from_token(credentials.credentials)


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """管理员权限守卫"""
    if not current_user.is_admin:
        logger.info("admin route denied for user_id=%s", current_user.user_id)
        raise AuthorizationError()
    return current_user


def create_access_token(user_id: int, role: str = UserRole.USER.value,
                        email: Optional[str] = None) -> str:
    """创建访问token"""
    return security_manager.create_jwt_token(user_id, role=role, email=email)


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """
    生成密码哈希

    格式：pbkdf2_sha256$迭代次数$盐$哈希，校验时从存储值中读取迭代次数
    """
    iterations = iterations or settings.password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{PASSWORD_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    """校验密码，存储值缺失或格式不对时返回 False"""
    if not stored:
        return False
    try:
        scheme, iterations, salt, expected = stored.split("$")
        iterations = int(iterations)
    except ValueError:
        logger.warning("malformed password hash")
        return False
    if scheme != PASSWORD_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return hmac.compare_digest(digest.hex(), expected)


def generate_otp() -> str:
    """6位数字验证码"""
    return f"{secrets.randbelow(1_000_000):06d}"


def hash_otp(email: str, otp: str) -> str:
    # 验证码只存哈希，按邮箱加盐
    message = f"{email}:{otp}".encode("utf-8")
    return hmac.new(settings.jwt_secret_key.encode("utf-8"), message, hashlib.sha256).hexdigest()
