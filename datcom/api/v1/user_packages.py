"""
我的套餐路由模块
"""

from fastapi import APIRouter, Depends

from ...core.error_handler import create_success_response
from ...core.security import get_current_user
from ...models.user import CurrentUser
from ...services.user_package_service import UserPackageService
from ..deps import get_user_package_service

router = APIRouter()


@router.get("/my")
def get_my_packages(current_user: CurrentUser = Depends(get_current_user),
                    service: UserPackageService = Depends(get_user_package_service)):
    packages = service.get_my_packages(current_user.user_id)
    return create_success_response([p.model_dump(mode="json") for p in packages])


@router.get("/my/active")
def get_my_usable_packages(current_user: CurrentUser = Depends(get_current_user),
                           service: UserPackageService = Depends(get_user_package_service)):
    """当前可用于下单的套餐"""
    packages = service.get_my_usable_packages(current_user.user_id)
    return create_success_response([p.model_dump(mode="json") for p in packages])


@router.post("/{user_package_id}/set-active")
def set_active_package(user_package_id: int,
                       current_user: CurrentUser = Depends(get_current_user),
                       service: UserPackageService = Depends(get_user_package_service)):
    package = service.set_active_package(current_user.user_id, user_package_id)
    return create_success_response(package.model_dump(mode="json"), "已设为默认套餐")
