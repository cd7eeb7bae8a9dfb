"""
订单相关的请求/响应模式
"""

from pydantic import BaseModel, Field, field_validator
from typing import List


class OrderItemRequest(BaseModel):
    """订单菜品"""
    menu_item_id: int = Field(..., description="菜品ID")
    note: str = Field("", max_length=200, description="备注，去除首尾空白后最多200字")

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, v):
        # 长度按去除空白后的内容计算，与业务层一致
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


class OrderPlaceRequest(BaseModel):
    """下单请求，order_type 在业务层校验以返回 INVALID_ORDER_TYPE"""
    items: List[OrderItemRequest] = Field(default_factory=list, description="菜品列表，可为空")
    order_type: str = Field("normal", description="订餐类型 normal / no-rice")


class ConfirmAllRequest(BaseModel):
    """批量确认请求"""
    menu_id: int = Field(..., description="菜单ID")


class ConfirmAllResponse(BaseModel):
    """批量确认结果"""
    confirmed_count: int = Field(..., description="本次确认的订单数")
    total_items: int = Field(..., description="本次扣除的总次数")
