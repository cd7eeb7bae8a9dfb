"""
套餐相关数据模型
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from enum import Enum
from .base import BaseEntity, TimestampMixin


class PackageType(str, Enum):
    """套餐类型枚举"""
    NORMAL = "normal"       # 带米饭
    NO_RICE = "no-rice"     # 不带米饭


class MealPackage(BaseEntity, TimestampMixin):
    """套餐目录模板"""
    package_id: int = Field(..., description="套餐ID")
    name: str = Field(..., description="套餐名称")
    turns: int = Field(..., gt=0, description="包含次数")
    price: int = Field(..., ge=0, description="价格")
    valid_days: int = Field(..., gt=0, description="有效天数")
    package_type: PackageType = Field(PackageType.NORMAL, description="套餐类型")
    is_active: bool = Field(True, description="是否上架")


class UserPackage(BaseEntity):
    """用户已购套餐（次数账本条目）"""
    user_package_id: int = Field(..., description="用户套餐ID")
    user_id: int = Field(..., description="所属用户ID")
    meal_package_id: int = Field(..., description="来源套餐模板ID")
    package_name: Optional[str] = Field(None, description="来源套餐名称")
    package_type: PackageType = Field(PackageType.NORMAL, description="套餐类型（购买时复制）")
    remaining_turns: int = Field(..., description="剩余次数")
    purchased_at: datetime = Field(..., description="购买时间（UTC）")
    expires_at: datetime = Field(..., description="过期时间（UTC）")
    is_active: bool = Field(True, description="是否有效")

    def is_usable(self, now: datetime) -> bool:
        """有效、有剩余次数且未过期"""
        return self.is_active and self.remaining_turns > 0 and self.expires_at > now
