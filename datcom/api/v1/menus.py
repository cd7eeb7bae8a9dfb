"""
每日菜单路由模块
"""

from fastapi import APIRouter, Depends, Query

from ...core.error_handler import create_success_response
from ...core.security import get_current_user, require_admin
from ...models.user import CurrentUser
from ...schemas.menu import MenuCreateRequest, MenuPreviewRequest, MenuUpdateRequest
from ...services.menu_service import MenuService
from ..deps import get_menu_service

router = APIRouter()


@router.get("")
def list_menus(limit: int = Query(30, ge=1, le=200),
               offset: int = Query(0, ge=0),
               current_user: CurrentUser = Depends(get_current_user),
               service: MenuService = Depends(get_menu_service)):
    menus = service.list_menus(limit=limit, offset=offset)
    return create_success_response([m.model_dump(mode="json") for m in menus])


@router.get("/today")
def get_today_menus(current_user: CurrentUser = Depends(get_current_user),
                    service: MenuService = Depends(get_menu_service)):
    """今日菜单，附带当前是否可下单"""
    menus = service.get_today_menus()
    return create_success_response([m.model_dump(mode="json") for m in menus])


@router.post("/preview")
def preview_menu(req: MenuPreviewRequest,
                 admin: CurrentUser = Depends(require_admin),
                 service: MenuService = Depends(get_menu_service)):
    """解析菜单文本但不保存"""
    items = service.preview(req.raw_content)
    return create_success_response({"items": items, "total": len(items)})


@router.get("/{menu_id}")
def get_menu(menu_id: int,
             current_user: CurrentUser = Depends(get_current_user),
             service: MenuService = Depends(get_menu_service)):
    menu = service.get_menu(menu_id)
    menu.can_order = service.can_order(menu)
    return create_success_response(menu.model_dump(mode="json"))


@router.post("", status_code=201)
def create_menu(req: MenuCreateRequest,
                admin: CurrentUser = Depends(require_admin),
                service: MenuService = Depends(get_menu_service)):
    menu = service.create_menu(
        req.raw_content,
        created_by=admin.user_id,
        menu_date=req.menu_date,
        begin_at=req.begin_at,
        end_at=req.end_at,
    )
    return create_success_response(menu.model_dump(mode="json"), "菜单已发布")


@router.put("/{menu_id}")
def update_menu(menu_id: int, req: MenuUpdateRequest,
                admin: CurrentUser = Depends(require_admin),
                service: MenuService = Depends(get_menu_service)):
    menu = service.update_menu(
        menu_id,
        actor_id=admin.user_id,
        raw_content=req.raw_content,
        begin_at=req.begin_at,
        end_at=req.end_at,
        is_locked=req.is_locked,
    )
    return create_success_response(menu.model_dump(mode="json"), "菜单已更新")


@router.patch("/{menu_id}/lock")
def lock_menu(menu_id: int,
              admin: CurrentUser = Depends(require_admin),
              service: MenuService = Depends(get_menu_service)):
    menu = service.lock_menu(menu_id, actor_id=admin.user_id)
    return create_success_response(menu.model_dump(mode="json"), "菜单已锁定")


@router.patch("/{menu_id}/unlock")
def unlock_menu(menu_id: int,
                admin: CurrentUser = Depends(require_admin),
                service: MenuService = Depends(get_menu_service)):
    menu = service.unlock_menu(menu_id, actor_id=admin.user_id)
    return create_success_response(menu.model_dump(mode="json"), "菜单已解锁")
