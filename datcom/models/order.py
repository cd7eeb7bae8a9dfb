"""
订单相关数据模型
"""

from pydantic import Field
from datetime import datetime
from typing import List, Optional
from .base import BaseEntity
from .package import PackageType


class OrderItem(BaseEntity):
    """订单菜品，每项计 1 次"""
    order_item_id: int = Field(..., description="订单菜品ID")
    order_id: int = Field(..., description="所属订单ID")
    menu_item_id: int = Field(..., description="菜品ID")
    menu_item_name: Optional[str] = Field(None, description="菜品名称")
    quantity: int = Field(1, ge=1, description="数量（仅展示用）")
    note: str = Field("", max_length=200, description="备注")


class Order(BaseEntity):
    """订单，每个用户每份菜单至多一单"""
    order_id: int = Field(..., description="订单ID")
    user_id: int = Field(..., description="用户ID")
    menu_id: int = Field(..., description="菜单ID")
    user_package_id: int = Field(..., description="计费套餐ID")
    order_type: PackageType = Field(..., description="订餐类型")
    is_confirmed: bool = Field(False, description="是否已确认扣次")
    ordered_at: datetime = Field(..., description="下单时间（UTC）")
    updated_at: Optional[datetime] = None
    items: List[OrderItem] = Field(default_factory=list, description="订单菜品")

    @property
    def item_count(self) -> int:
        return len(self.items)
