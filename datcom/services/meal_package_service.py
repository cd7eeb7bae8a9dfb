"""
套餐目录服务
管理员维护可售卖的套餐模板

业务规则：
- 模板一旦被购买申请或用户套餐引用，只允许切换 is_active，
  其余字段的修改和删除都会被拒绝
"""

import logging
from typing import List, Optional

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import PackageInUseError, PackageNotFoundError
from ..models.package import MealPackage
from ..schemas.package import MealPackageCreateRequest, MealPackageUpdateRequest

logger = logging.getLogger(__name__)


class MealPackageService:
    """套餐目录服务"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def list_packages(self, is_active: Optional[bool] = None) -> List[MealPackage]:
        if is_active is None:
            rows = self.db.fetch_all("SELECT * FROM meal_packages ORDER BY turns, package_id")
        else:
            rows = self.db.fetch_all(
                "SELECT * FROM meal_packages WHERE is_active = ? ORDER BY turns, package_id",
                [is_active]
            )
        return [MealPackage(**row) for row in rows]

    def get_package(self, package_id: int) -> MealPackage:
        row = self.db.fetch_one("SELECT * FROM meal_packages WHERE package_id = ?", [package_id])
        if not row:
            raise PackageNotFoundError(details={"package_id": package_id})
        return MealPackage(**row)

    def create_package(self, data: MealPackageCreateRequest, actor_id: int) -> MealPackage:
        with self.db.transaction():
            package_id = self.db.fetch_value(
                """INSERT INTO meal_packages(name, turns, price, valid_days, package_type, is_active)
                   VALUES (?,?,?,?,?,?) RETURNING package_id""",
                [data.name, data.turns, data.price, data.valid_days,
                 data.package_type.value, data.is_active]
            )
            self.db.log_operation("package_create", {"package_id": package_id, "name": data.name},
                                  actor_id=actor_id)
        logger.info("meal package %s created: %s", package_id, data.name)
        return self.get_package(package_id)

    def update_package(self, package_id: int, data: MealPackageUpdateRequest,
                       actor_id: int) -> MealPackage:
        current = self.get_package(package_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return current

        content_fields = {k for k in changes if k != "is_active"}
        if content_fields and self._is_referenced(package_id):
            raise PackageInUseError(details={"package_id": package_id,
                                             "fields": sorted(content_fields)})

        assignments = []
        params = []
        for field, value in changes.items():
            assignments.append(f"{field} = ?")
            params.append(value.value if hasattr(value, "value") else value)
        assignments.append("updated_at = now()")
        params.append(package_id)

        with self.db.transaction():
            self.db.execute(
                f"UPDATE meal_packages SET {', '.join(assignments)} WHERE package_id = ?", params
            )
            self.db.log_operation("package_update", {"package_id": package_id, "changes": changes},
                                  actor_id=actor_id)
        return self.get_package(package_id)

    def delete_package(self, package_id: int, actor_id: int) -> None:
        self.get_package(package_id)
        if self._is_referenced(package_id):
            raise PackageInUseError(details={"package_id": package_id})
        with self.db.transaction():
            self.db.execute("DELETE FROM meal_packages WHERE package_id = ?", [package_id])
            self.db.log_operation("package_delete", {"package_id": package_id}, actor_id=actor_id)

    def _is_referenced(self, package_id: int) -> bool:
        return bool(self.db.fetch_value(
            """SELECT EXISTS(SELECT 1 FROM purchase_requests WHERE meal_package_id = ?)
                   OR EXISTS(SELECT 1 FROM user_packages WHERE meal_package_id = ?)""",
            [package_id, package_id]
        ))
