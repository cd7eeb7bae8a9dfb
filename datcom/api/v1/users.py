"""
用户路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.error_handler import create_success_response
from ...core.security import get_current_user, require_admin
from ...models.user import CurrentUser, UserRole
from ...services.user_service import UserService
from ..deps import get_user_service

router = APIRouter()


@router.get("/me")
def get_my_profile(current_user: CurrentUser = Depends(get_current_user),
                   user_service: UserService = Depends(get_user_service)):
    """当前用户资料，附带默认套餐"""
    return create_success_response(user_service.get_profile(current_user.user_id))


@router.get("")
def list_users(limit: int = Query(100, ge=1, le=500),
               offset: int = Query(0, ge=0),
               role: Optional[UserRole] = Query(None),
               is_blocked: Optional[bool] = Query(None),
               search: Optional[str] = Query(None, max_length=100),
               admin: CurrentUser = Depends(require_admin),
               user_service: UserService = Depends(get_user_service)):
    """用户列表（管理员），可按角色、封禁状态和关键字过滤"""
    users = user_service.list_users(limit=limit, offset=offset, role=role,
                                    is_blocked=is_blocked, search=search)
    return create_success_response([u.model_dump(mode="json") for u in users])


@router.get("/{user_id}")
def get_user_detail(user_id: int,
                    admin: CurrentUser = Depends(require_admin),
                    user_service: UserService = Depends(get_user_service)):
    """用户详情及已购套餐（管理员）"""
    return create_success_response(user_service.get_user_detail(user_id))


@router.patch("/{user_id}/block")
def block_user(user_id: int,
               admin: CurrentUser = Depends(require_admin),
               user_service: UserService = Depends(get_user_service)):
    user = user_service.block_user(user_id, actor_id=admin.user_id)
    return create_success_response(user.model_dump(mode="json"), f"已封禁账号 {user.email}")


@router.patch("/{user_id}/unblock")
def unblock_user(user_id: int,
                 admin: CurrentUser = Depends(require_admin),
                 user_service: UserService = Depends(get_user_service)):
    user = user_service.unblock_user(user_id, actor_id=admin.user_id)
    return create_success_response(user.model_dump(mode="json"), f"已解封账号 {user.email}")
