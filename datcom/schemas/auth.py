"""
认证相关的请求/响应模式
"""

from pydantic import BaseModel, Field
from typing import Optional


class RegisterRequest(BaseModel):
    """注册请求"""
    name: str = Field(..., min_length=1, max_length=100, description="姓名")
    email: str = Field(..., min_length=3, max_length=200, description="邮箱")
    password: str = Field(..., min_length=6, max_length=128, description="密码，至少6位")


class VerifyOtpRequest(BaseModel):
    """验证码校验请求"""
    email: str = Field(..., min_length=3, max_length=200, description="邮箱")
    otp: str = Field(..., min_length=4, max_length=10, description="邮件中的验证码")


class ResendOtpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=200, description="邮箱")


class LoginRequest(BaseModel):
    """密码登录请求"""
    email: str = Field(..., min_length=3, max_length=200, description="邮箱")
    password: str = Field(..., min_length=1, max_length=128, description="密码")


class DevLoginRequest(BaseModel):
    """开发环境登录请求：按邮箱建档并签发令牌，仅调试模式可用"""
    email: str = Field(..., min_length=3, max_length=200, description="邮箱")
    name: Optional[str] = Field(None, max_length=100, description="姓名")


class LoginResponse(BaseModel):
    """登录响应"""
    token: str = Field(description="JWT访问令牌")
    token_type: str = Field(default="Bearer", description="令牌类型")
    user_id: int = Field(description="用户ID")
    name: Optional[str] = Field(None, description="姓名")
    email: str = Field(description="邮箱")
    role: str = Field(description="角色")
