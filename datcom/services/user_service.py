"""
用户服务
处理用户查询、开发环境登录建档、个人资料和管理员封禁
"""

import logging
from typing import Any, Dict, List, Optional

from ..config.settings import settings
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import CannotBlockAdminError, UserNotFoundError, ValidationError
from ..models.user import User, UserRole
from .user_package_service import UserPackageService

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    """邮箱统一小写去空白，缺少 @ 时报参数错误"""
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("邮箱格式错误", details={"email": email})
    return email


def default_role_for(email: str, admin_emails: Optional[List[str]] = None) -> UserRole:
    if admin_emails is None:
        admin_emails = settings.admin_emails
    admin_emails = {e.strip().lower() for e in admin_emails}
    return UserRole.ADMIN if email in admin_emails else UserRole.USER


class UserService:
    """用户服务"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def get_user(self, user_id: int) -> User:
        row = self.db.fetch_one("SELECT * FROM users WHERE id = ?", [user_id])
        if not row:
            raise UserNotFoundError(details={"user_id": user_id})
        return User(**row)

    def find_by_email(self, email: str) -> Optional[User]:
        row = self.db.fetch_one("SELECT * FROM users WHERE email = ?", [email.strip().lower()])
        return User(**row) if row else None

    def get_or_create_user(self, email: str, name: Optional[str] = None,
                           role: Optional[UserRole] = None) -> User:
        """
        按邮箱获取用户，不存在则创建（视为已验证，无密码）

        Args:
            email: 邮箱（大小写不敏感）
            name: 姓名，仅在新建时使用
            role: 显式角色；未指定时按 settings.admin_emails 判定

        Returns:
            User: 用户信息
        """
        email = normalize_email(email)

        existing = self.find_by_email(email)
        if existing:
            return existing

        role = UserRole(role) if role is not None else default_role_for(email)
        user_id = self.db.fetch_value(
            "INSERT INTO users(email, name, role, is_verified) VALUES (?,?,?,TRUE) RETURNING id",
            [email, name or email.split("@")[0], role.value]
        )
        logger.info("created user id=%s email=%s role=%s", user_id, email, role.value)
        return self.get_user(user_id)

    def list_users(self, limit: int = 100, offset: int = 0, role: Optional[UserRole] = None,
                   is_blocked: Optional[bool] = None, search: Optional[str] = None) -> List[User]:
        """
        用户列表

        Args:
            role: 按角色过滤
            is_blocked: 按封禁状态过滤
            search: 姓名或邮箱包含该关键字（不区分大小写）
        """
        conditions = []
        params: List[Any] = []
        if role is not None:
            conditions.append("role = ?")
            params.append(UserRole(role).value)
        if is_blocked is not None:
            conditions.append("is_blocked = ?")
            params.append(is_blocked)
        if search:
            conditions.append("(name ILIKE ? OR email ILIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self.db.fetch_all(
            f"SELECT * FROM users {where} ORDER BY id LIMIT ? OFFSET ?", params + [limit, offset]
        )
        return [User(**row) for row in rows]

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        """用户资料，附带当前默认套餐"""
        user = self.get_user(user_id)
        active_package = None
        if user.active_package_id is not None:
            active_package = self.db.fetch_one(
                """SELECT up.*, mp.name AS package_name
                   FROM user_packages up
                   LEFT JOIN meal_packages mp ON mp.package_id = up.meal_package_id
                   WHERE up.user_package_id = ?""",
                [user.active_package_id]
            )
        return {
            **user.model_dump(mode="json"),
            "active_package": active_package,
        }

    def get_user_detail(self, user_id: int) -> Dict[str, Any]:
        """管理员查看用户详情：资料和全部已购套餐（最近购买在前）"""
        profile = self.get_profile(user_id)
        packages = UserPackageService(self.db).get_my_packages(user_id)
        return {
            "user": profile,
            "packages": [p.model_dump(mode="json") for p in packages],
        }

    def block_user(self, user_id: int, actor_id: Optional[int] = None) -> User:
        """
        封禁用户，封禁后无法登录

        Raises:
            UserNotFoundError: 用户不存在
            CannotBlockAdminError: 目标是管理员
        """
        user = self.get_user(user_id)
        if user.is_admin:
            raise CannotBlockAdminError(details={"user_id": user_id})
        return self._set_blocked(user, True, actor_id)

    def unblock_user(self, user_id: int, actor_id: Optional[int] = None) -> User:
        return self._set_blocked(self.get_user(user_id), False, actor_id)

    def _set_blocked(self, user: User, blocked: bool, actor_id: Optional[int]) -> User:
        with self.db.transaction():
            self.db.execute("UPDATE users SET is_blocked = ? WHERE id = ?", [blocked, user.id])
            self.db.log_operation("user_block" if blocked else "user_unblock",
                                  {"email": user.email}, user_id=user.id, actor_id=actor_id)
        logger.info("user %s %s by %s", user.id, "blocked" if blocked else "unblocked", actor_id)
        return self.get_user(user.id)
