"""
统计路由模块（管理员）
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder

from ...core.error_handler import create_success_response
from ...core.security import require_admin
from ...models.user import CurrentUser
from ...services.statistics_service import StatisticsService
from ..deps import get_statistics_service

router = APIRouter()


@router.get("/revenue")
def get_revenue(period: str = Query("day", pattern="^(day|month|year)$"),
                base_date: Optional[date] = Query(None, alias="date"),
                admin: CurrentUser = Depends(require_admin),
                service: StatisticsService = Depends(get_statistics_service)):
    return create_success_response(jsonable_encoder(service.get_revenue(period, base_date)))


@router.get("/menu-items")
def get_menu_item_stats(start_date: Optional[date] = Query(None),
                        end_date: Optional[date] = Query(None),
                        admin: CurrentUser = Depends(require_admin),
                        service: StatisticsService = Depends(get_statistics_service)):
    """菜品热度"""
    return create_success_response(jsonable_encoder(service.get_menu_item_stats(start_date, end_date)))


@router.get("/dashboard")
def get_dashboard(admin: CurrentUser = Depends(require_admin),
                  service: StatisticsService = Depends(get_statistics_service)):
    return create_success_response(service.get_dashboard())
