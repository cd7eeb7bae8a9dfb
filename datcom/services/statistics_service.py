"""
统计服务
管理员查看营收、菜品热度和首页概览

所有日期区间都按 UTC+7 本地日历计算；processed_at 等时间戳以 naive UTC 入库，
比较前先把本地区间边界换算成 UTC
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..core.clock import LOCAL_TZ, Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

PERIODS = ("day", "month", "year")


def period_bounds(period: str, base_date: date) -> Tuple[date, date]:
    """返回 period 所在本地区间的首末日期（两端包含）"""
    if period == "day":
        return base_date, base_date
    if period == "month":
        last_day = calendar.monthrange(base_date.year, base_date.month)[1]
        return base_date.replace(day=1), base_date.replace(day=last_day)
    if period == "year":
        return date(base_date.year, 1, 1), date(base_date.year, 12, 31)
    raise ValidationError(f"不支持的统计周期: {period}", details={"allowed": list(PERIODS)})


def local_day_start_utc(day: date) -> datetime:
    """本地日期 00:00 对应的 naive UTC 时间"""
    return datetime.combine(day, time.min, LOCAL_TZ).astimezone(timezone.utc).replace(tzinfo=None)


class StatisticsService:
    """统计服务"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None):
        self.db = db or db_manager
        self.clock = clock or system_clock

    def get_revenue(self, period: str = "day", base_date: Optional[date] = None) -> Dict[str, Any]:
        """
        营收统计

        Args:
            period: day / month / year
            base_date: 基准日期，默认本地今天

        Returns:
            dict: 区间、总营收、售出套餐数、区间内菜单的已确认订单数、按套餐分组明细
        """
        base_date = base_date or self.clock.today()
        start_date, end_date = period_bounds(period, base_date)
        start_utc = local_day_start_utc(start_date)
        end_utc = local_day_start_utc(end_date + timedelta(days=1))

        breakdown = self.db.fetch_all(
            """SELECT mp.package_id, mp.name, COUNT(*) AS count, SUM(mp.price) AS revenue
               FROM purchase_requests pr
               JOIN meal_packages mp ON mp.package_id = pr.meal_package_id
               WHERE pr.status = 'approved' AND pr.processed_at >= ? AND pr.processed_at < ?
               GROUP BY mp.package_id, mp.name
               ORDER BY SUM(mp.price) DESC, mp.package_id""",
            [start_utc, end_utc]
        )
        for row in breakdown:
            row["count"] = int(row["count"])
            row["revenue"] = int(row["revenue"] or 0)

        total_orders = self.db.fetch_value(
            """SELECT COUNT(*) FROM orders o
               JOIN daily_menus m ON m.menu_id = o.menu_id
               WHERE o.is_confirmed = TRUE AND m.menu_date BETWEEN ? AND ?""",
            [start_date, end_date]
        )

        return {
            "period": period,
            "start_date": start_date,
            "end_date": end_date,
            "total_revenue": sum(row["revenue"] for row in breakdown),
            "total_packages_sold": sum(row["count"] for row in breakdown),
            "total_orders": int(total_orders or 0),
            "breakdown": breakdown,
        }

    def get_menu_item_stats(self, start_date: Optional[date] = None,
                            end_date: Optional[date] = None) -> Dict[str, Any]:
        """区间内各菜品被点的份数，按份数倒序"""
        today = self.clock.today()
        start_date = start_date or today
        end_date = end_date or today
        if start_date > end_date:
            raise ValidationError("开始日期不能晚于结束日期",
                                  details={"start_date": start_date, "end_date": end_date})

        items = self._item_counts(start_date, end_date)
        total_orders = self.db.fetch_value(
            """SELECT COUNT(*) FROM orders o
               JOIN daily_menus m ON m.menu_id = o.menu_id
               WHERE m.menu_date BETWEEN ? AND ?""",
            [start_date, end_date]
        )
        return {
            "start_date": start_date,
            "end_date": end_date,
            "total_orders": int(total_orders or 0),
            "items": items,
        }

    def get_dashboard(self) -> Dict[str, Any]:
        """首页概览"""
        today = self.clock.today()
        month_start = today.replace(day=1)

        total_users = self.db.fetch_value("SELECT COUNT(*) FROM users")
        usable_packages = self.db.fetch_value(
            """SELECT COUNT(*) FROM user_packages
               WHERE is_active = TRUE AND remaining_turns > 0 AND expires_at > ?""",
            [self.clock.utcnow()]
        )
        today_menus = self.db.fetch_value(
            "SELECT COUNT(*) FROM daily_menus WHERE menu_date = ?", [today]
        )
        today_orders = self.db.fetch_value(
            """SELECT COUNT(*) FROM orders o
               JOIN daily_menus m ON m.menu_id = o.menu_id
               WHERE m.menu_date = ?""",
            [today]
        )
        pending_requests = self.db.fetch_value(
            "SELECT COUNT(*) FROM purchase_requests WHERE status = 'pending'"
        )
        monthly_revenue = self.db.fetch_value(
            """SELECT COALESCE(SUM(mp.price), 0)
               FROM purchase_requests pr
               JOIN meal_packages mp ON mp.package_id = pr.meal_package_id
               WHERE pr.status = 'approved' AND pr.processed_at >= ? AND pr.processed_at < ?""",
            [local_day_start_utc(month_start), local_day_start_utc(today + timedelta(days=1))]
        )

        return {
            "total_users": int(total_users or 0),
            "active_packages": int(usable_packages or 0),
            "today_menus": int(today_menus or 0),
            "today_orders": int(today_orders or 0),
            "pending_purchase_requests": int(pending_requests or 0),
            "monthly_revenue": int(monthly_revenue or 0),
            "top_items": self._item_counts(month_start, today)[:5],
        }

    def _item_counts(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        rows = self.db.fetch_all(
            """SELECT mi.item_id AS menu_item_id, mi.name, SUM(oi.quantity) AS count
               FROM order_items oi
               JOIN orders o ON o.order_id = oi.order_id
               JOIN daily_menus m ON m.menu_id = o.menu_id
               JOIN menu_items mi ON mi.item_id = oi.menu_item_id
               WHERE m.menu_date BETWEEN ? AND ?
               GROUP BY mi.item_id, mi.name
               ORDER BY SUM(oi.quantity) DESC, mi.item_id""",
            [start_date, end_date]
        )
        for row in rows:
            row["count"] = int(row["count"])
        return rows
