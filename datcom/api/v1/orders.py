"""
订单路由模块
"""

import io
from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse

from ...core.error_handler import create_success_response
from ...core.security import get_current_user, require_admin
from ...models.user import CurrentUser
from ...schemas.order import ConfirmAllRequest, ConfirmAllResponse, OrderPlaceRequest
from ...services.confirmation_service import ConfirmationService
from ...services.export_service import EXCEL_MEDIA_TYPE, ExportService
from ...services.order_service import OrderService
from ..deps import get_confirmation_service, get_export_service, get_order_service

router = APIRouter()


@router.get("/my")
def get_my_orders(limit: int = Query(20, ge=1, le=100),
                  current_user: CurrentUser = Depends(get_current_user),
                  service: OrderService = Depends(get_order_service)):
    return create_success_response(service.get_my_orders(current_user.user_id, limit=limit))


@router.get("/today")
def get_my_today_order(current_user: CurrentUser = Depends(get_current_user),
                       service: OrderService = Depends(get_order_service)):
    """今日菜单下我的订单，没有时 data 为 null"""
    order = service.get_my_today_order(current_user.user_id)
    response = create_success_response(order.model_dump(mode="json") if order else None)
    response.setdefault("data", None)
    return response


@router.post("")
def place_order(req: OrderPlaceRequest,
                current_user: CurrentUser = Depends(get_current_user),
                service: OrderService = Depends(get_order_service)):
    """
    下单或修改今日订单

    新建返回 201，修改已有订单返回 200
    """
    order, created = service.place_order(current_user.user_id, req.items, req.order_type)
    message = "订餐成功" if created else "订单已更新"
    return JSONResponse(
        status_code=201 if created else 200,
        content=create_success_response(order.model_dump(mode="json"), message),
    )


@router.get("/by-date/{day}")
def get_orders_by_date(day: date,
                       admin: CurrentUser = Depends(require_admin),
                       service: OrderService = Depends(get_order_service)):
    """某天的订单和菜品汇总（管理员）"""
    return create_success_response(service.get_orders_by_date(day))


@router.post("/confirm-all")
def confirm_all_orders(req: ConfirmAllRequest,
                       admin: CurrentUser = Depends(require_admin),
                       service: ConfirmationService = Depends(get_confirmation_service)):
    """确认菜单下全部订单并扣次（管理员）"""
    result = ConfirmAllResponse(**service.confirm_all_orders(req.menu_id, actor_id=admin.user_id))
    return create_success_response(
        result.model_dump(),
        f"已确认 {result.confirmed_count} 个订单（{result.total_items} 份）"
    )


@router.get("/copy-text/{menu_id}")
def get_copy_text(menu_id: int,
                  admin: CurrentUser = Depends(require_admin),
                  service: OrderService = Depends(get_order_service)):
    return create_success_response(service.get_copy_text(menu_id))


@router.get("/export/{menu_id}")
def export_menu_orders(menu_id: int,
                       admin: CurrentUser = Depends(require_admin),
                       service: ExportService = Depends(get_export_service)):
    """导出菜单订单为Excel文件（管理员）"""
    excel_data = service.export_menu_orders_excel(menu_id)
    return StreamingResponse(
        io.BytesIO(excel_data),
        media_type=EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={service.export_filename(menu_id)}"}
    )
