"""
套餐购买申请路由模块
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from ...core.error_handler import create_success_response
from ...core.security import get_current_user, require_admin
from ...models.purchase import PurchaseStatus
from ...models.user import CurrentUser
from ...schemas.purchase import PurchaseCreateRequest
from ...services.purchase_service import PurchaseService
from ..deps import get_purchase_service

router = APIRouter()


@router.get("")
def list_purchase_requests(status: Optional[PurchaseStatus] = Query(None),
                           admin: CurrentUser = Depends(require_admin),
                           service: PurchaseService = Depends(get_purchase_service)):
    """全部购买申请（管理员）"""
    requests = service.list_purchase_requests(status)
    return create_success_response([r.model_dump(mode="json") for r in requests])


@router.get("/my")
def get_my_purchase_requests(current_user: CurrentUser = Depends(get_current_user),
                             service: PurchaseService = Depends(get_purchase_service)):
    requests = service.get_my_purchase_requests(current_user.user_id)
    return create_success_response([r.model_dump(mode="json") for r in requests])


@router.post("", status_code=201)
def create_purchase_request(req: PurchaseCreateRequest,
                            current_user: CurrentUser = Depends(get_current_user),
                            service: PurchaseService = Depends(get_purchase_service)):
    request = service.create_purchase_request(current_user.user_id, req.meal_package_id)
    return create_success_response(request.model_dump(mode="json"), "购买申请已提交，请等待管理员审核")


@router.post("/{request_id}/approve")
def approve_purchase_request(request_id: int,
                             background_tasks: BackgroundTasks,
                             admin: CurrentUser = Depends(require_admin),
                             service: PurchaseService = Depends(get_purchase_service)):
    """审核通过（管理员），邮件通知在响应后发送"""
    package = service.approve_purchase_request(request_id, admin.user_id,
                                               background_tasks=background_tasks)
    return create_success_response(package.model_dump(mode="json"), "申请已通过")


@router.post("/{request_id}/reject")
def reject_purchase_request(request_id: int,
                            admin: CurrentUser = Depends(require_admin),
                            service: PurchaseService = Depends(get_purchase_service)):
    request = service.reject_purchase_request(request_id, admin.user_id)
    return create_success_response(request.model_dump(mode="json"), "申请已拒绝")
