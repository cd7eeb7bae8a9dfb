"""
菜单相关数据模型
"""

from pydantic import Field
from datetime import date, datetime
from typing import List, Optional
from enum import Enum
from .base import BaseEntity


class MenuCategory(str, Enum):
    """菜品分类枚举"""
    NEW = "new"           # 新菜
    DAILY = "daily"       # 每日菜
    SPECIAL = "special"   # 特色菜


class MenuItem(BaseEntity):
    """菜品"""
    item_id: int = Field(..., description="菜品ID")
    menu_id: int = Field(..., description="所属菜单ID")
    name: str = Field(..., description="菜品名称")
    category: MenuCategory = Field(MenuCategory.DAILY, description="分类")


class DailyMenu(BaseEntity):
    """每日菜单"""
    menu_id: int = Field(..., description="菜单ID")
    menu_date: date = Field(..., description="菜单日期（UTC+7 本地日期）")
    raw_content: str = Field(..., description="原始菜单文本")
    begin_at: str = Field(..., description="订餐开始时间 HH:mm")
    end_at: str = Field(..., description="订餐截止时间 HH:mm")
    is_locked: bool = Field(False, description="是否已锁定")
    created_by: Optional[int] = Field(None, description="创建者用户ID")
    created_at: Optional[datetime] = None
    items: List[MenuItem] = Field(default_factory=list, description="菜品列表")
    can_order: Optional[bool] = Field(None, description="当前是否可下单")
