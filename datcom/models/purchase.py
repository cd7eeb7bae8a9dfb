"""
套餐购买申请数据模型
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from enum import Enum
from .base import BaseEntity


class PurchaseStatus(str, Enum):
    """申请状态枚举，非 pending 即为终态"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PurchaseRequest(BaseEntity):
    """套餐购买申请"""
    request_id: int = Field(..., description="申请ID")
    user_id: int = Field(..., description="申请用户ID")
    meal_package_id: int = Field(..., description="套餐模板ID")
    package_name: Optional[str] = Field(None, description="套餐名称")
    status: PurchaseStatus = Field(PurchaseStatus.PENDING, description="状态")
    requested_at: datetime = Field(..., description="申请时间（UTC）")
    processed_at: Optional[datetime] = Field(None, description="处理时间（UTC）")
    processed_by: Optional[int] = Field(None, description="处理人ID")
