"""
套餐目录路由模块
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.error_handler import create_success_response
from ...core.security import get_current_user, require_admin
from ...models.user import CurrentUser
from ...schemas.package import MealPackageCreateRequest, MealPackageUpdateRequest
from ...services.meal_package_service import MealPackageService
from ..deps import get_meal_package_service

router = APIRouter()


@router.get("")
def list_meal_packages(is_active: Optional[bool] = Query(None),
                       current_user: CurrentUser = Depends(get_current_user),
                       service: MealPackageService = Depends(get_meal_package_service)):
    packages = service.list_packages(is_active=is_active)
    return create_success_response([p.model_dump(mode="json") for p in packages])


@router.get("/{package_id}")
def get_meal_package(package_id: int,
                     current_user: CurrentUser = Depends(get_current_user),
                     service: MealPackageService = Depends(get_meal_package_service)):
    return create_success_response(service.get_package(package_id).model_dump(mode="json"))


@router.post("", status_code=201)
def create_meal_package(req: MealPackageCreateRequest,
                        admin: CurrentUser = Depends(require_admin),
                        service: MealPackageService = Depends(get_meal_package_service)):
    """创建套餐模板（管理员）"""
    package = service.create_package(req, actor_id=admin.user_id)
    return create_success_response(package.model_dump(mode="json"), "套餐已创建")


@router.put("/{package_id}")
def update_meal_package(package_id: int, req: MealPackageUpdateRequest,
                        admin: CurrentUser = Depends(require_admin),
                        service: MealPackageService = Depends(get_meal_package_service)):
    """修改套餐模板（管理员），已被引用的模板只能上下架"""
    package = service.update_package(package_id, req, actor_id=admin.user_id)
    return create_success_response(package.model_dump(mode="json"), "套餐已更新")


@router.delete("/{package_id}")
def delete_meal_package(package_id: int,
                        admin: CurrentUser = Depends(require_admin),
                        service: MealPackageService = Depends(get_meal_package_service)):
    service.delete_package(package_id, actor_id=admin.user_id)
    return create_success_response({"package_id": package_id}, "套餐已删除")
