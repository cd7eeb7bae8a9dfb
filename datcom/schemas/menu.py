"""
菜单相关的请求/响应模式
"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Optional

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class MenuPreviewRequest(BaseModel):
    """菜单文本预览请求"""
    raw_content: str = Field(..., min_length=1, description="原始菜单文本")


class MenuCreateRequest(BaseModel):
    """菜单创建请求"""
    raw_content: str = Field(..., min_length=1, description="原始菜单文本")
    menu_date: Optional[date] = Field(None, description="菜单日期，默认今天（UTC+7）")
    begin_at: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="订餐开始 HH:mm")
    end_at: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="订餐截止 HH:mm")


class MenuUpdateRequest(BaseModel):
    """菜单更新请求"""
    raw_content: Optional[str] = Field(None, min_length=1, description="原始菜单文本")
    begin_at: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="订餐开始 HH:mm")
    end_at: Optional[str] = Field(None, pattern=HHMM_PATTERN, description="订餐截止 HH:mm")
    is_locked: Optional[bool] = Field(None, description="是否锁定")
