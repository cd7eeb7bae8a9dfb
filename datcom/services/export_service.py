"""
导出服务
把某份菜单的订单导出为 Excel，供管理员对账和发给厨房
"""

import io
import logging
from typing import Any, Dict, List

import pandas as pd

from ..core.clock import Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..models.menu import DailyMenu
from .order_service import OrderService

logger = logging.getLogger(__name__)

EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportService:
    """导出服务"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None):
        self.db = db or db_manager
        self.clock = clock or system_clock
        self.order_service = OrderService(self.db, self.clock)

    def export_menu_orders_excel(self, menu_id: int) -> bytes:
        """
        导出菜单订单为Excel文件

        工作表：菜单概况 / 订单详情 / 菜品统计

        Raises:
            MenuNotFoundError: 菜单不存在
        """
        menu = self.order_service.menu_service.get_menu(menu_id)
        orders = self.order_service.get_menu_orders(menu_id)

        excel_buffer = io.BytesIO()
        with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
            self._create_menu_summary_sheet(writer, menu, orders)
            self._create_orders_detail_sheet(writer, orders)
            self._create_item_statistics_sheet(writer, OrderService.summarize_items(orders))

        logger.info("exported %d orders of menu %s", len(orders), menu_id)
        return excel_buffer.getvalue()

    def export_filename(self, menu_id: int) -> str:
        menu = self.order_service.menu_service.get_menu(menu_id)
        return f"orders_{menu.menu_date.isoformat()}_{menu_id}.xlsx"

    def _create_menu_summary_sheet(self, writer, menu: DailyMenu, orders: List[Dict[str, Any]]):
        no_rice = [o for o in orders if o["order_type"] == "no-rice"]
        summary_df = pd.DataFrame({
            "项目": ["菜单ID", "日期", "订餐时间", "是否锁定", "订单数", "总份数", "不带饭份数", "已确认订单数", "导出时间"],
            "数值": [
                menu.menu_id,
                menu.menu_date.isoformat(),
                f"{menu.begin_at} - {menu.end_at}",
                "是" if menu.is_locked else "否",
                len(orders),
                sum(len(o["items"]) for o in orders),
                sum(len(o["items"]) for o in no_rice),
                sum(1 for o in orders if o["is_confirmed"]),
                self.clock.local_now().strftime("%Y-%m-%d %H:%M:%S"),
            ],
        })
        summary_df.to_excel(writer, sheet_name="菜单概况", index=False)

    def _create_orders_detail_sheet(self, writer, orders: List[Dict[str, Any]]):
        if not orders:
            pd.DataFrame({"提示": ["暂无订单数据"]}).to_excel(writer, sheet_name="订单详情", index=False)
            return

        rows = []
        for order in orders:
            for item in order["items"] or [None]:
                rows.append({
                    "订单ID": order["order_id"],
                    "用户": order["user_name"] or "未设置",
                    "邮箱": order["user_email"],
                    "类型": order["order_type"],
                    "菜品": item["menu_item_name"] if item else "",
                    "备注": item["note"] if item else "",
                    "已确认": "是" if order["is_confirmed"] else "否",
                    "下单时间": order["ordered_at"],
                })
        pd.DataFrame(rows).to_excel(writer, sheet_name="订单详情", index=False)

    def _create_item_statistics_sheet(self, writer, summary: List[Dict[str, Any]]):
        if not summary:
            pd.DataFrame({"提示": ["暂无菜品数据"]}).to_excel(writer, sheet_name="菜品统计", index=False)
            return
        stats_df = pd.DataFrame([{"菜品": s["name"], "份数": s["count"]} for s in summary])
        stats_df.to_excel(writer, sheet_name="菜品统计", index=False)
