"""
菜单服务模块
管理每日菜单的发布、修改、锁定以及"今日菜单"的解析

主要功能：
- 菜单创建：原始文本经 menu_parser 拆分为菜品
- 菜单修改：原始文本变化时整体替换菜品
- 锁定/解锁
- 今日菜单：本地日期（UTC+7）下 menu_id 最小的一份，供下单使用

业务规则：
- 同一天允许存在多份菜单
- 订餐时间窗口为 [begin_at, end_at]，两端包含，不跨午夜
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ..config.settings import settings
from ..core.clock import Clock, is_within_time_range, parse_hhmm, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import MenuNotFoundError
from ..models.menu import DailyMenu, MenuItem
from ..utils.menu_parser import parse_menu_text

logger = logging.getLogger(__name__)


class MenuService:
    """菜单服务类"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None):
        self.db = db or db_manager
        self.clock = clock or system_clock

    def preview(self, raw_content: str) -> List[Dict[str, str]]:
        """只解析不入库，供管理员发布前确认"""
        return parse_menu_text(raw_content)

    def create_menu(self, raw_content: str, created_by: int,
                    menu_date: Optional[date] = None,
                    begin_at: Optional[str] = None,
                    end_at: Optional[str] = None) -> DailyMenu:
        """
        创建菜单

        Args:
            raw_content: 原始菜单文本
            created_by: 创建者用户ID
            menu_date: 菜单日期，默认为本地今天
            begin_at: 订餐开始时间 HH:mm，默认取配置
            end_at: 订餐截止时间 HH:mm，默认取配置

        Returns:
            DailyMenu: 带菜品的菜单
        """
        begin_at = begin_at or settings.default_begin_at
        end_at = end_at or settings.default_end_at
        parse_hhmm(begin_at)
        parse_hhmm(end_at)
        menu_date = menu_date or self.clock.today()
        parsed_items = parse_menu_text(raw_content)

        with self.db.transaction():
            menu_id = self.db.fetch_value(
                """INSERT INTO daily_menus(menu_date, raw_content, begin_at, end_at, is_locked, created_by, created_at)
                   VALUES (?,?,?,?,FALSE,?,?) RETURNING menu_id""",
                [menu_date, raw_content, begin_at, end_at, created_by, self.clock.utcnow()]
            )
            self._insert_items(menu_id, parsed_items)
            self.db.log_operation(
                "menu_create",
                {"menu_id": menu_id, "menu_date": menu_date, "item_count": len(parsed_items)},
                actor_id=created_by
            )

        logger.info("menu %s created for %s with %d items", menu_id, menu_date, len(parsed_items))
        return self.get_menu(menu_id)

    def update_menu(self, menu_id: int, actor_id: int,
                    raw_content: Optional[str] = None,
                    begin_at: Optional[str] = None,
                    end_at: Optional[str] = None,
                    is_locked: Optional[bool] = None) -> DailyMenu:
        """修改菜单，原始文本有变化时替换全部菜品"""
        current = self._get_menu_row(menu_id)

        assignments = []
        params: List[Any] = []
        replace_items = raw_content is not None and raw_content != current["raw_content"]
        if replace_items:
            assignments.append("raw_content = ?")
            params.append(raw_content)
        if begin_at is not None:
            parse_hhmm(begin_at)
            assignments.append("begin_at = ?")
            params.append(begin_at)
        if end_at is not None:
            parse_hhmm(end_at)
            assignments.append("end_at = ?")
            params.append(end_at)
        if is_locked is not None:
            assignments.append("is_locked = ?")
            params.append(is_locked)

        if not assignments:
            return self.get_menu(menu_id)

        with self.db.transaction():
            self.db.execute(
                f"UPDATE daily_menus SET {', '.join(assignments)} WHERE menu_id = ?",
                params + [menu_id]
            )
            if replace_items:
                self.db.execute("DELETE FROM menu_items WHERE menu_id = ?", [menu_id])
                self._insert_items(menu_id, parse_menu_text(raw_content))
            self.db.log_operation(
                "menu_update",
                {"menu_id": menu_id, "replace_items": replace_items,
                 "begin_at": begin_at, "end_at": end_at, "is_locked": is_locked},
                actor_id=actor_id
            )
        return self.get_menu(menu_id)

    def lock_menu(self, menu_id: int, actor_id: Optional[int] = None) -> DailyMenu:
        return self._set_locked(menu_id, True, actor_id)

    def unlock_menu(self, menu_id: int, actor_id: Optional[int] = None) -> DailyMenu:
        return self._set_locked(menu_id, False, actor_id)

    def _set_locked(self, menu_id: int, locked: bool, actor_id: Optional[int]) -> DailyMenu:
        self._get_menu_row(menu_id)
        with self.db.transaction():
            self.db.execute("UPDATE daily_menus SET is_locked = ? WHERE menu_id = ?", [locked, menu_id])
            self.db.log_operation("menu_lock" if locked else "menu_unlock",
                                  {"menu_id": menu_id}, actor_id=actor_id)
        logger.info("menu %s %s by %s", menu_id, "locked" if locked else "unlocked", actor_id)
        return self.get_menu(menu_id)

    def get_menu(self, menu_id: int) -> DailyMenu:
        """获取菜单及其菜品"""
        row = self._get_menu_row(menu_id)
        return self._build_menu(row)

    def list_menus(self, limit: int = 30, offset: int = 0) -> List[DailyMenu]:
        """按日期倒序列出菜单，不含菜品"""
        rows = self.db.fetch_all(
            "SELECT * FROM daily_menus ORDER BY menu_date DESC, menu_id DESC LIMIT ? OFFSET ?",
            [limit, offset]
        )
        return [DailyMenu(**row) for row in rows]

    def get_menus_by_date(self, day: date) -> List[DailyMenu]:
        rows = self.db.fetch_all(
            "SELECT * FROM daily_menus WHERE menu_date = ? ORDER BY menu_id", [day]
        )
        return [self._build_menu(row) for row in rows]

    def get_today_menus(self) -> List[DailyMenu]:
        """今日全部菜单，附带 can_order"""
        menus = self.get_menus_by_date(self.clock.today())
        for menu in menus:
            menu.can_order = self.can_order(menu)
        return menus

    def resolve_today_menu(self) -> Optional[DailyMenu]:
        """今日菜单：本地日期下 menu_id 最小的一份"""
        row = self.db.fetch_one(
            "SELECT * FROM daily_menus WHERE menu_date = ? ORDER BY menu_id LIMIT 1",
            [self.clock.today()]
        )
        return self._build_menu(row) if row else None

    def can_order(self, menu: DailyMenu) -> bool:
        if menu.is_locked:
            return False
        return is_within_time_range(menu.begin_at, menu.end_at, now=self.clock.now())

    def get_menu_items(self, menu_id: int) -> List[MenuItem]:
        rows = self.db.fetch_all(
            "SELECT * FROM menu_items WHERE menu_id = ? ORDER BY item_id", [menu_id]
        )
        return [MenuItem(**row) for row in rows]

    def _get_menu_row(self, menu_id: int) -> Dict[str, Any]:
        row = self.db.fetch_one("SELECT * FROM daily_menus WHERE menu_id = ?", [menu_id])
        if not row:
            raise MenuNotFoundError(details={"menu_id": menu_id})
        return row

    def _build_menu(self, row: Dict[str, Any]) -> DailyMenu:
        return DailyMenu(**row, items=self.get_menu_items(row["menu_id"]))

    def _insert_items(self, menu_id: int, items: List[Dict[str, str]]):
        for item in items:
            self.db.execute(
                "INSERT INTO menu_items(menu_id, name, category) VALUES (?,?,?)",
                [menu_id, item["name"], item["category"]]
            )
