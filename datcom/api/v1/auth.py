"""
认证路由模块
注册、验证码激活、密码登录；调试模式下提供按邮箱建档的开发登录
"""

from fastapi import APIRouter, Depends

from ...core.error_handler import create_success_response
from ...core.security import create_access_token
from ...models.user import User
from ...schemas.auth import (
    DevLoginRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResendOtpRequest,
    VerifyOtpRequest,
)
from ...services.auth_service import AuthService
from ..deps import get_auth_service

router = APIRouter()


def _token_payload(user: User) -> dict:
    token = create_access_token(user.id, role=user.role, email=user.email)
    response = LoginResponse(token=token, user_id=user.id, name=user.name,
                             email=user.email, role=user.role)
    return response.model_dump()


@router.post("/register", status_code=201)
def register(req: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """注册账号，验证码发送到邮箱"""
    result = service.register(req.name, req.email, req.password)
    return create_success_response(result, "注册成功，请查收邮箱中的验证码")


@router.post("/verify-otp")
def verify_otp(req: VerifyOtpRequest, service: AuthService = Depends(get_auth_service)):
    """校验验证码，成功后直接登录"""
    user = service.verify_otp(req.email, req.otp)
    return create_success_response(_token_payload(user), "账号验证成功")


@router.post("/resend-otp")
def resend_otp(req: ResendOtpRequest, service: AuthService = Depends(get_auth_service)):
    if service.resend_otp(req.email):
        return create_success_response({"sent": True}, "验证码已重新发送，请查收邮箱")
    return create_success_response({"sent": False}, "账号已完成验证")


@router.post("/login")
def login(req: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """密码登录并获取访问令牌"""
    user = service.login(req.email, req.password)
    return create_success_response(_token_payload(user), "登录成功")


@router.post("/dev-login")
def dev_login(req: DevLoginRequest, service: AuthService = Depends(get_auth_service)):
    """开发登录，仅 debug 模式可用"""
    user = service.dev_login(req.email, req.name)
    return create_success_response(_token_payload(user), "登录成功")
