"""
套餐相关的请求/响应模式
"""

from pydantic import BaseModel, Field
from typing import Optional
from ..models.package import PackageType


class MealPackageCreateRequest(BaseModel):
    """套餐模板创建请求"""
    name: str = Field(..., min_length=1, max_length=100, description="套餐名称")
    turns: int = Field(..., gt=0, description="包含次数")
    price: int = Field(..., ge=0, description="价格")
    valid_days: int = Field(..., gt=0, description="有效天数")
    package_type: PackageType = Field(PackageType.NORMAL, description="套餐类型")
    is_active: bool = Field(True, description="是否上架")


class MealPackageUpdateRequest(BaseModel):
    """套餐模板更新请求，只提交需要修改的字段"""
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="套餐名称")
    turns: Optional[int] = Field(None, gt=0, description="包含次数")
    price: Optional[int] = Field(None, ge=0, description="价格")
    valid_days: Optional[int] = Field(None, gt=0, description="有效天数")
    package_type: Optional[PackageType] = Field(None, description="套餐类型")
    is_active: Optional[bool] = Field(None, description="是否上架")
