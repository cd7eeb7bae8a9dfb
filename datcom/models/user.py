"""
用户相关数据模型
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum
from .base import BaseEntity


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(BaseEntity):
    """用户完整模型"""
    id: int = Field(..., description="用户ID")
    email: str = Field(..., description="邮箱")
    name: Optional[str] = Field(None, max_length=100, description="姓名")
    role: UserRole = Field(UserRole.USER, description="角色")
    is_verified: bool = Field(False, description="邮箱是否已验证")
    is_blocked: bool = Field(False, description="是否已被封禁")
    active_package_id: Optional[int] = Field(None, description="默认套餐ID")
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class CurrentUser(BaseModel):
    """令牌中携带的已认证身份，业务层直接信任"""
    user_id: int
    role: UserRole = UserRole.USER
    email: Optional[str] = None

    model_config = {"use_enum_values": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
