"""
用户套餐（次数账本）服务
提供可用性判断、下单计费套餐的选择和默认套餐设置

可用条件：is_active AND remaining_turns > 0 AND expires_at > now
选择规则：同类型可用套餐中过期时间最早者优先，过期时间相同按ID升序
"""

import logging
from typing import List, Optional

from ..core.clock import Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import PackageNotFoundError, PackageUnavailableError
from ..models.package import PackageType, UserPackage

logger = logging.getLogger(__name__)

_SELECT_WITH_NAME = """
SELECT up.*, mp.name AS package_name
FROM user_packages up
LEFT JOIN meal_packages mp ON mp.package_id = up.meal_package_id
"""


class UserPackageService:
    """用户套餐服务"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None):
        self.db = db or db_manager
        self.clock = clock or system_clock

    def is_usable(self, package: UserPackage) -> bool:
        return package.is_usable(self.clock.utcnow())

    def get_package(self, user_package_id: int) -> UserPackage:
        row = self.db.fetch_one(
            _SELECT_WITH_NAME + " WHERE up.user_package_id = ?", [user_package_id]
        )
        if not row:
            raise PackageNotFoundError(details={"user_package_id": user_package_id})
        return UserPackage(**row)

    def select_charge_candidate(self, user_id: int,
                                package_type: PackageType) -> Optional[UserPackage]:
        """选出本次下单应计费的套餐，没有可用套餐时返回 None"""
        row = self.db.fetch_one(
            _SELECT_WITH_NAME + """
            WHERE up.user_id = ?
              AND up.package_type = ?
              AND up.is_active = TRUE
              AND up.remaining_turns > 0
              AND up.expires_at > ?
            ORDER BY up.expires_at ASC, up.user_package_id ASC
            LIMIT 1
            """,
            [user_id, PackageType(package_type).value, self.clock.utcnow()]
        )
        return UserPackage(**row) if row else None

    def get_my_packages(self, user_id: int) -> List[UserPackage]:
        rows = self.db.fetch_all(
            _SELECT_WITH_NAME + " WHERE up.user_id = ? ORDER BY up.purchased_at DESC, up.user_package_id DESC",
            [user_id]
        )
        return [UserPackage(**row) for row in rows]

    def get_my_usable_packages(self, user_id: int) -> List[UserPackage]:
        rows = self.db.fetch_all(
            _SELECT_WITH_NAME + """
            WHERE up.user_id = ?
              AND up.is_active = TRUE
              AND up.remaining_turns > 0
              AND up.expires_at > ?
            ORDER BY up.purchased_at DESC, up.user_package_id DESC
            """,
            [user_id, self.clock.utcnow()]
        )
        return [UserPackage(**row) for row in rows]

    def set_active_package(self, user_id: int, user_package_id: int) -> UserPackage:
        """
        设置用户的默认套餐指针

        Raises:
            PackageNotFoundError: 套餐不存在或不属于该用户
            PackageUnavailableError: 套餐已失效、用尽或过期
        """
        row = self.db.fetch_one(
            _SELECT_WITH_NAME + " WHERE up.user_package_id = ? AND up.user_id = ?",
            [user_package_id, user_id]
        )
        if not row:
            raise PackageNotFoundError(details={"user_package_id": user_package_id})

        package = UserPackage(**row)
        if not self.is_usable(package):
            raise PackageUnavailableError(details={"user_package_id": user_package_id})

        with self.db.transaction():
            self.db.execute(
                "UPDATE users SET active_package_id = ? WHERE id = ?", [user_package_id, user_id]
            )
            self.db.log_operation("package_set_active", {"user_package_id": user_package_id},
                                  user_id=user_id, actor_id=user_id)
        logger.info("user %s set active package %s", user_id, user_package_id)
        return package
