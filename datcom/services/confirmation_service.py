"""
订单批量确认服务
管理员对某份菜单的全部待确认订单一次性扣次并锁定菜单

业务规则：
- 整批在一个事务内完成，任何一单失败则全部回滚
- 每单扣除的次数 = 订单菜品数，不设下限
- 扣次后剩余次数 <= 0 的套餐永久失效
- 重复确认已全部确认的菜单返回 0，不产生其它变化
"""

import logging
from typing import Dict

from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import MenuNotFoundError, PackageNotFoundError

logger = logging.getLogger(__name__)


class ConfirmationService:
    """订单确认服务"""

    def __init__(self, db: DatabaseManager = None):
        self.db = db or db_manager

    def confirm_all_orders(self, menu_id: int, actor_id: int = None) -> Dict[str, int]:
        """
        确认菜单下所有未确认订单

        Returns:
            dict: {"confirmed_count": 确认的订单数, "total_items": 扣除的总次数}

        Raises:
            MenuNotFoundError: 菜单不存在
            PackageNotFoundError: 订单的计费套餐已不存在（整批回滚）
        """
        if not self.db.fetch_one("SELECT menu_id FROM daily_menus WHERE menu_id = ?", [menu_id]):
            raise MenuNotFoundError(details={"menu_id": menu_id})

        confirmed_count = 0
        total_items = 0

        with self.db.transaction():
            orders = self.db.fetch_all(
                """SELECT o.order_id, o.user_package_id,
                          (SELECT COUNT(*) FROM order_items oi WHERE oi.order_id = o.order_id) AS item_count
                   FROM orders o
                   WHERE o.menu_id = ? AND o.is_confirmed = FALSE
                   ORDER BY o.order_id""",
                [menu_id]
            )

            for order in orders:
                item_count = int(order["item_count"])
                package = self.db.fetch_one(
                    "SELECT remaining_turns FROM user_packages WHERE user_package_id = ?",
                    [order["user_package_id"]]
                )
                if package is None:
                    raise PackageNotFoundError(
                        "订单的计费套餐不存在，确认已取消",
                        details={"order_id": order["order_id"],
                                 "user_package_id": order["user_package_id"]}
                    )

                remaining = package["remaining_turns"]
                if item_count > 0:
                    remaining -= item_count
                    total_items += item_count
                if item_count > 0 or remaining <= 0:
                    self.db.execute(
                        """UPDATE user_packages
                           SET remaining_turns = ?,
                               is_active = CASE WHEN ? <= 0 THEN FALSE ELSE is_active END
                           WHERE user_package_id = ?""",
                        [remaining, remaining, order["user_package_id"]]
                    )

                self.db.execute(
                    "UPDATE orders SET is_confirmed = TRUE WHERE order_id = ?", [order["order_id"]]
                )
                confirmed_count += 1

            self.db.execute("UPDATE daily_menus SET is_locked = TRUE WHERE menu_id = ?", [menu_id])
            self.db.log_operation(
                "orders_confirm",
                {"menu_id": menu_id, "confirmed_count": confirmed_count, "total_items": total_items},
                actor_id=actor_id
            )

        logger.info("menu %s confirmed: %d orders, %d items", menu_id, confirmed_count, total_items)
        return {"confirmed_count": confirmed_count, "total_items": total_items}
