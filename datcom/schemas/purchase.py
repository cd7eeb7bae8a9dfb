"""
套餐购买申请的请求/响应模式
"""

from pydantic import BaseModel, Field


class PurchaseCreateRequest(BaseModel):
    """购买申请创建请求"""
    meal_package_id: int = Field(..., description="套餐模板ID")
