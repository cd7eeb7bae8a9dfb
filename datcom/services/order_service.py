"""
订单服务模块
提供下单准入、订单查询和订单汇总功能

主要功能：
- 下单准入：菜单锁定/时间窗口校验、计费套餐选择、次数校验
- 幂等写入：同一用户同一菜单只保留一单，重复提交即修改
- 订单查询：我的订单、今日订单、按日期汇总
- 厨房用订单文本

业务规则：
- 每个菜品计 1 次，quantity 仅作展示
- 下单时不扣次，扣次发生在管理员批量确认时
- 锁定优先于时间窗口判断
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.clock import Clock, is_within_time_range, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import (
    IntegrityConflictError,
    InvalidMenuItemError,
    InvalidOrderTypeError,
    MenuLockedError,
    MenuNotFoundError,
    NoMatchingPackageError,
    NotEnoughTurnsError,
    OrderNotFoundError,
    ValidationError,
)
from ..models.menu import DailyMenu
from ..models.order import Order, OrderItem
from ..models.package import PackageType
from .menu_service import MenuService
from .user_package_service import UserPackageService

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 200

_PACKAGE_TYPE_LABELS = {
    PackageType.NORMAL.value: "带饭",
    PackageType.NO_RICE.value: "不带饭",
}


class OrderService:
    """订单服务类，封装下单准入和订单查询"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None):
        self.db = db or db_manager
        self.clock = clock or system_clock
        self.menu_service = MenuService(self.db, self.clock)
        self.package_service = UserPackageService(self.db, self.clock)

    def place_order(self, user_id: int, items: Iterable[Any],
                    order_type: str = PackageType.NORMAL.value) -> Tuple[Order, bool]:
        """
        下单或修改今日订单

        Args:
            user_id: 用户ID
            items: 菜品列表，元素为 {"menu_item_id", "note"} 字典或同名属性对象，可为空
            order_type: "normal" 或 "no-rice"

        Returns:
            (Order, created): created 为 True 表示新建，False 表示修改已有订单

        Raises:
            InvalidOrderTypeError: 订餐类型无效
            MenuNotFoundError: 今日没有菜单
            MenuLockedError: 菜单已锁定或不在订餐时间内
            NoMatchingPackageError: 没有该类型的可用套餐
            NotEnoughTurnsError: 菜品数超过套餐剩余次数
            InvalidMenuItemError: 菜品不属于今日菜单
        """
        package_type = self._parse_order_type(order_type)
        normalized = self._normalize_items(items)

        menu = self.menu_service.resolve_today_menu()
        if menu is None:
            raise MenuNotFoundError("今天没有菜单", details={"date": self.clock.today()})

        self._check_menu_open(menu)

        candidate = self.package_service.select_charge_candidate(user_id, package_type)
        if candidate is None:
            label = _PACKAGE_TYPE_LABELS[package_type.value]
            raise NoMatchingPackageError(
                f"您没有可用的{label}套餐（{package_type.value}）",
                details={"order_type": package_type.value}
            )

        if len(normalized) > candidate.remaining_turns:
            raise NotEnoughTurnsError(
                f"剩余 {candidate.remaining_turns} 次，无法订 {len(normalized)} 份",
                details={"remaining_turns": candidate.remaining_turns,
                         "requested": len(normalized),
                         "user_package_id": candidate.user_package_id}
            )

        valid_item_ids = {item.item_id for item in menu.items}
        invalid = [i["menu_item_id"] for i in normalized if i["menu_item_id"] not in valid_item_ids]
        if invalid:
            raise InvalidMenuItemError(details={"menu_id": menu.menu_id, "menu_item_ids": invalid})

        try:
            order_id, created = self._write_order(
                user_id, menu.menu_id, candidate.user_package_id, package_type, normalized
            )
        except IntegrityConflictError:
            # 并发的重复插入被唯一索引拒绝，按修改路径重试一次
            logger.warning("order insert conflict user=%s menu=%s, retrying as update",
                           user_id, menu.menu_id)
            order_id, created = self._write_order(
                user_id, menu.menu_id, candidate.user_package_id, package_type, normalized
            )

        logger.info("order %s %s: user=%s menu=%s package=%s items=%d",
                    order_id, "created" if created else "revised", user_id,
                    menu.menu_id, candidate.user_package_id, len(normalized))
        return self.get_order(order_id), created

    def _parse_order_type(self, order_type: str) -> PackageType:
        try:
            return PackageType(order_type)
        except ValueError:
            raise InvalidOrderTypeError(
                f"订餐类型无效: {order_type}",
                details={"order_type": order_type,
                         "allowed": [t.value for t in PackageType]}
            )

    def _normalize_items(self, items: Iterable[Any]) -> List[Dict[str, Any]]:
        normalized = []
        for item in items or []:
            if isinstance(item, dict):
                menu_item_id, note = item.get("menu_item_id"), item.get("note")
            else:
                menu_item_id, note = item.menu_item_id, getattr(item, "note", "")
            note = (note or "").strip()
            if len(note) > MAX_NOTE_LENGTH:
                raise ValidationError(
                    f"备注不能超过 {MAX_NOTE_LENGTH} 个字符",
                    details={"menu_item_id": menu_item_id}
                )
            normalized.append({"menu_item_id": int(menu_item_id), "note": note})
        return normalized

    def _check_menu_open(self, menu: DailyMenu):
        if menu.is_locked:
            raise MenuLockedError(
                "菜单已被管理员锁定，无法订餐",
                details={"menu_id": menu.menu_id, "reason": "locked"}
            )
        if not is_within_time_range(menu.begin_at, menu.end_at, now=self.clock.now()):
            raise MenuLockedError(
                f"不在订餐时间内（{menu.begin_at} - {menu.end_at}）",
                details={"menu_id": menu.menu_id, "reason": "outside_time",
                         "begin_at": menu.begin_at, "end_at": menu.end_at}
            )

    def _write_order(self, user_id: int, menu_id: int, user_package_id: int,
                     package_type: PackageType,
                     items: List[Dict[str, Any]]) -> Tuple[int, bool]:
        """在一个事务内插入或覆盖订单及其菜品"""
        now = self.clock.utcnow()
        with self.db.transaction():
            order_id = self.db.fetch_value(
                "SELECT order_id FROM orders WHERE user_id = ? AND menu_id = ?",
                [user_id, menu_id]
            )
            created = order_id is None
            if created:
                order_id = self.db.fetch_value(
                    """INSERT INTO orders(user_id, menu_id, user_package_id, order_type, is_confirmed, ordered_at, updated_at)
                       VALUES (?,?,?,?,FALSE,?,?) RETURNING order_id""",
                    [user_id, menu_id, user_package_id, package_type.value, now, now]
                )
            else:
                self.db.execute(
                    """UPDATE orders SET order_type = ?, user_package_id = ?, updated_at = ?
                       WHERE order_id = ?""",
                    [package_type.value, user_package_id, now, order_id]
                )
                self.db.execute("DELETE FROM order_items WHERE order_id = ?", [order_id])

            for item in items:
                self.db.execute(
                    "INSERT INTO order_items(order_id, menu_item_id, quantity, note) VALUES (?,?,1,?)",
                    [order_id, item["menu_item_id"], item["note"]]
                )

            self.db.log_operation(
                "order_place",
                {"order_id": order_id, "menu_id": menu_id, "created": created,
                 "user_package_id": user_package_id, "order_type": package_type.value,
                 "item_count": len(items)},
                user_id=user_id, actor_id=user_id
            )
        return order_id, created

    def get_order(self, order_id: int) -> Order:
        row = self.db.fetch_one("SELECT * FROM orders WHERE order_id = ?", [order_id])
        if not row:
            raise OrderNotFoundError(details={"order_id": order_id})
        return Order(**row, items=self.get_order_items(order_id))

    def get_order_items(self, order_id: int) -> List[OrderItem]:
        rows = self.db.fetch_all(
            """SELECT oi.*, mi.name AS menu_item_name
               FROM order_items oi
               LEFT JOIN menu_items mi ON mi.item_id = oi.menu_item_id
               WHERE oi.order_id = ?
               ORDER BY oi.order_item_id""",
            [order_id]
        )
        return [OrderItem(**row) for row in rows]

    def get_my_orders(self, user_id: int, limit: int = 20) -> List[Dict[str, Any]]:
        """我的订单，最新在前，附带菜单日期"""
        rows = self.db.fetch_all(
            """SELECT o.*, m.menu_date
               FROM orders o
               LEFT JOIN daily_menus m ON m.menu_id = o.menu_id
               WHERE o.user_id = ?
               ORDER BY o.ordered_at DESC, o.order_id DESC
               LIMIT ?""",
            [user_id, limit]
        )
        result = []
        for row in rows:
            menu_date = row.pop("menu_date")
            order = Order(**row, items=self.get_order_items(row["order_id"]))
            result.append({**order.model_dump(mode="json"), "menu_date": menu_date})
        return result

    def get_my_today_order(self, user_id: int) -> Optional[Order]:
        menu = self.menu_service.resolve_today_menu()
        if menu is None:
            return None
        row = self.db.fetch_one(
            "SELECT * FROM orders WHERE user_id = ? AND menu_id = ?", [user_id, menu.menu_id]
        )
        if not row:
            return None
        return Order(**row, items=self.get_order_items(row["order_id"]))

    def get_orders_by_date(self, day: date) -> Dict[str, Any]:
        """
        管理员查看某天的订单

        Returns:
            dict: menu（当天 menu_id 最小的菜单或 None）、orders（含用户和菜品）、
                  summary（按份数倒序的菜品汇总）
        """
        menu_row = self.db.fetch_one(
            "SELECT * FROM daily_menus WHERE menu_date = ? ORDER BY menu_id LIMIT 1", [day]
        )
        if not menu_row:
            return {"menu": None, "orders": [], "summary": []}

        menu = self.menu_service.get_menu(menu_row["menu_id"])
        orders = self.get_menu_orders(menu.menu_id)
        return {
            "menu": menu.model_dump(mode="json"),
            "orders": orders,
            "summary": self.summarize_items(orders),
        }

    def get_copy_text(self, menu_id: int) -> Dict[str, Any]:
        """生成发给厨房的订单文本，按带饭/不带饭分组"""
        self.menu_service.get_menu(menu_id)
        orders = self.get_menu_orders(menu_id)

        normal_lines: List[str] = []
        no_rice_lines: List[str] = []
        total_normal = 0
        total_no_rice = 0

        for order in orders:
            if not order["items"]:
                continue
            item_lines = []
            for item in order["items"]:
                text = item["menu_item_name"] or f"#{item['menu_item_id']}"
                if item["note"]:
                    text += f" ({item['note']})"
                item_lines.append(f"  - {text}")
            block = f"📍 {order['user_name'] or '顾客'}:\n" + "\n".join(item_lines)

            if order["order_type"] == PackageType.NO_RICE.value:
                total_no_rice += len(order["items"])
                no_rice_lines.append(block)
            else:
                total_normal += len(order["items"])
                normal_lines.append(block)

        total_meals = total_normal + total_no_rice
        parts = [
            f"📋 汇总：共 {total_meals} 份（{len(orders)} 人）",
            f"   🍚 带饭：{total_normal} 份",
            f"   🥢 不带饭：{total_no_rice} 份",
            "",
        ]
        if normal_lines:
            parts.append("🍚 带饭订单：")
            parts.extend(normal_lines)
            parts.append("")
        if no_rice_lines:
            parts.append("🥢 不带饭订单：")
            parts.extend(no_rice_lines)

        return {
            "copy_text": "\n".join(parts),
            "summary": self.summarize_items(orders),
            "total_meals": total_meals,
            "total_normal_meals": total_normal,
            "total_no_rice_meals": total_no_rice,
            "total_orders": len(orders),
        }

    def get_menu_orders(self, menu_id: int) -> List[Dict[str, Any]]:
        rows = self.db.fetch_all(
            """SELECT o.*, u.name AS user_name, u.email AS user_email
               FROM orders o
               LEFT JOIN users u ON u.id = o.user_id
               WHERE o.menu_id = ?
               ORDER BY o.order_id""",
            [menu_id]
        )
        result = []
        for row in rows:
            user_name = row.pop("user_name")
            user_email = row.pop("user_email")
            order = Order(**row, items=self.get_order_items(row["order_id"]))
            result.append({**order.model_dump(mode="json"),
                           "user_name": user_name, "user_email": user_email})
        return result

    @staticmethod
    def summarize_items(orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        counts: Dict[int, Dict[str, Any]] = {}
        for order in orders:
            for item in order["items"]:
                entry = counts.setdefault(
                    item["menu_item_id"],
                    {"menu_item_id": item["menu_item_id"], "name": item["menu_item_name"], "count": 0}
                )
                entry["count"] += item["quantity"]
        return sorted(counts.values(), key=lambda e: (-e["count"], e["menu_item_id"]))
