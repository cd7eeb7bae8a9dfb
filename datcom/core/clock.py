"""
时钟与订餐时间窗口
所有"当前时间"判断都基于固定的 UTC+7 偏移，与部署主机的时区设置无关

- Clock.now(): 当前UTC时刻（带时区）
- Clock.local_now(): 换算到 UTC+7 的本地时刻
- Clock.today(): 本地日历日期，用于确定"今日菜单"
- Clock.utcnow(): 入库用的 naive UTC 时间
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

UTC_OFFSET_HOURS = 7
LOCAL_TZ = timezone(timedelta(hours=UTC_OFFSET_HOURS), name="UTC+07:00")

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Clock:
    """系统时钟，测试中可替换为固定时间的实现"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_now(self) -> datetime:
        return self.now().astimezone(LOCAL_TZ)

    def today(self) -> date:
        return self.local_now().date()

    def utcnow(self) -> datetime:
        return self.now().astimezone(timezone.utc).replace(tzinfo=None)


system_clock = Clock()


def parse_hhmm(value: str) -> Tuple[int, int]:
    """解析 HH:mm 字符串为 (时, 分)"""
    match = _HHMM_RE.match(value or "")
    if not match:
        raise ValidationError(f"时间格式错误，应为 HH:mm: {value}")
    return int(match.group(1)), int(match.group(2))


def at_local_time(value: str, base: datetime) -> datetime:
    """把 HH:mm 放到 base 所在的同一本地日历日上"""
    hour, minute = parse_hhmm(value)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def is_within_time_range(begin_at: str, end_at: str,
                         now: Optional[datetime] = None,
                         clock: Clock = system_clock) -> bool:
    """
    判断当前本地时间是否落在 [begin_at, end_at] 内（两端包含）

    begin_at > end_at 时恒为 False，不做跨午夜处理
    """
    local_now = (now or clock.now()).astimezone(LOCAL_TZ)
    begin = at_local_time(begin_at, local_now)
    end = at_local_time(end_at, local_now)
    within = begin <= local_now <= end

    logger.debug(
        "time window check: now=%s begin=%s end=%s within=%s",
        local_now.isoformat(), begin.isoformat(), end.isoformat(), within
    )
    return within
