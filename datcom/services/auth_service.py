"""
认证服务
邮箱注册 + 验证码激活 + 密码登录；调试模式下另有免密码的开发登录

业务规则：
- 注册后账号处于未验证状态，验证码通过邮件发送，过期时间见 settings.otp_expire_minutes
- 验证码只保存哈希，验证成功后清除
- 登录依次检查：用户存在、未被封禁、已验证、密码正确
- 开发登录只在 settings.debug 开启时可用
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from ..config.settings import Settings, settings as default_settings
from ..core.clock import Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import (
    DevLoginDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidOtpError,
    UserBlockedError,
    UserNotFoundError,
    UserNotVerifiedError,
)
from ..core.security import generate_otp, hash_otp, hash_password, verify_password
from ..models.user import User
from .notification_service import NotificationService, notification_service
from .user_service import UserService, default_role_for, normalize_email

logger = logging.getLogger(__name__)


class AuthService:
    """认证服务"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None,
                 notifier: NotificationService = None, config: Optional[Settings] = None):
        self.db = db or db_manager
        self.clock = clock or system_clock
        self.notifier = notifier or notification_service
        self.config = config or default_settings
        self.user_service = UserService(self.db)

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """
        注册新账号并发送验证码

        Args:
            name: 姓名
            email: 邮箱（大小写不敏感）
            password: 明文密码，只保存哈希

        Returns:
            dict: email 和 requires_otp

        Raises:
            EmailExistsError: 邮箱已注册
        """
        email = normalize_email(email)
        name = name.strip()
        otp = generate_otp()
        expires_at = self.clock.utcnow() + timedelta(minutes=self.config.otp_expire_minutes)

        with self.db.transaction():
            if self.db.fetch_value("SELECT id FROM users WHERE email = ?", [email]) is not None:
                raise EmailExistsError(details={"email": email})
            user_id = self.db.fetch_value(
                """INSERT INTO users(email, name, role, password_hash, is_verified, otp_hash, otp_expires_at)
                   VALUES (?,?,?,?,FALSE,?,?) RETURNING id""",
                [email, name, default_role_for(email, self.config.admin_emails).value,
                 hash_password(password, self.config.password_hash_iterations),
                 hash_otp(email, otp), expires_at]
            )
            self.db.log_operation("user_register", {"email": email}, user_id=user_id, actor_id=user_id)

        logger.info("user %s registered, waiting for otp verification", user_id)
        self._send_otp(email, name, otp)
        return {"email": email, "requires_otp": True}

    def verify_otp(self, email: str, otp: str) -> User:
        """验证码校验通过后激活账号"""
        email = normalize_email(email)
        row = self._get_row(email)
        if row is None:
            raise UserNotFoundError(details={"email": email})

        expires_at = row["otp_expires_at"]
        if (not row["otp_hash"] or row["otp_hash"] != hash_otp(email, otp.strip())
                or expires_at is None or expires_at <= self.clock.utcnow()):
            raise InvalidOtpError()

        with self.db.transaction():
            self.db.execute(
                """UPDATE users SET is_verified = TRUE, otp_hash = NULL, otp_expires_at = NULL
                   WHERE id = ?""",
                [row["id"]]
            )
            self.db.log_operation("user_verify", {"email": email}, user_id=row["id"], actor_id=row["id"])
        return self.user_service.get_user(row["id"])

    def resend_otp(self, email: str) -> bool:
        """
        重新发送验证码

        Returns:
            bool: 是否发送了新验证码；账号已验证时返回 False
        """
        email = normalize_email(email)
        row = self._get_row(email)
        if row is None:
            raise UserNotFoundError(details={"email": email})
        if row["is_verified"]:
            return False

        otp = generate_otp()
        self.db.execute(
            "UPDATE users SET otp_hash = ?, otp_expires_at = ? WHERE id = ?",
            [hash_otp(email, otp),
             self.clock.utcnow() + timedelta(minutes=self.config.otp_expire_minutes), row["id"]]
        )
        self._send_otp(email, row["name"] or email, otp)
        return True

    def login(self, email: str, password: str) -> User:
        """
        密码登录

        Raises:
            InvalidCredentialsError: 用户不存在或密码错误
            UserBlockedError: 账号已被封禁
            UserNotVerifiedError: 账号未完成邮箱验证
        """
        email = normalize_email(email)
        row = self._get_row(email)
        if row is None:
            raise InvalidCredentialsError()
        if row["is_blocked"]:
            raise UserBlockedError(details={"email": email})
        if not row["is_verified"]:
            raise UserNotVerifiedError(details={"email": email})
        if not verify_password(password, row["password_hash"]):
            logger.info("login failed for user %s: wrong password", row["id"])
            raise InvalidCredentialsError()
        return User(**row)

    def dev_login(self, email: str, name: Optional[str] = None) -> User:
        """调试模式下按邮箱建档登录，不校验密码"""
        if not self.config.debug:
            raise DevLoginDisabledError()
        user = self.user_service.get_or_create_user(email, name)
        if user.is_blocked:
            raise UserBlockedError(details={"email": user.email})
        logger.debug("dev login for user %s", user.id)
        return user

    def _get_row(self, email: str) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one("SELECT * FROM users WHERE email = ?", [email])

    def _send_otp(self, email: str, name: str, otp: str) -> None:
        # 发送失败不回滚注册，用户可以重新获取验证码
        sent = self.notifier.notify_otp(email, name, otp, self.config.otp_expire_minutes)
        if not sent:
            logger.warning("otp email to %s was not sent", email)
