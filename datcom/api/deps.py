"""
路由依赖
服务实例通过依赖函数创建，测试中用 app.dependency_overrides 替换数据库和时钟
"""

from fastapi import Depends

from ..core.clock import Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..services.auth_service import AuthService
from ..services.confirmation_service import ConfirmationService
from ..services.export_service import ExportService
from ..services.meal_package_service import MealPackageService
from ..services.menu_service import MenuService
from ..services.notification_service import NotificationService, notification_service
from ..services.order_service import OrderService
from ..services.purchase_service import PurchaseService
from ..services.statistics_service import StatisticsService
from ..services.user_package_service import UserPackageService
from ..services.user_service import UserService


def get_db() -> DatabaseManager:
    return db_manager


def get_clock() -> Clock:
    return system_clock


def get_notifier() -> NotificationService:
    return notification_service


def get_auth_service(db: DatabaseManager = Depends(get_db),
                     clock: Clock = Depends(get_clock),
                     notifier: NotificationService = Depends(get_notifier)) -> AuthService:
    return AuthService(db, clock, notifier)


def get_user_service(db: DatabaseManager = Depends(get_db)) -> UserService:
    return UserService(db)


def get_meal_package_service(db: DatabaseManager = Depends(get_db)) -> MealPackageService:
    return MealPackageService(db)


def get_user_package_service(db: DatabaseManager = Depends(get_db),
                             clock: Clock = Depends(get_clock)) -> UserPackageService:
    return UserPackageService(db, clock)


def get_menu_service(db: DatabaseManager = Depends(get_db),
                     clock: Clock = Depends(get_clock)) -> MenuService:
    return MenuService(db, clock)


def get_order_service(db: DatabaseManager = Depends(get_db),
                      clock: Clock = Depends(get_clock)) -> OrderService:
    return OrderService(db, clock)


def get_confirmation_service(db: DatabaseManager = Depends(get_db)) -> ConfirmationService:
    return ConfirmationService(db)


def get_purchase_service(db: DatabaseManager = Depends(get_db),
                         clock: Clock = Depends(get_clock),
                         notifier: NotificationService = Depends(get_notifier)) -> PurchaseService:
    return PurchaseService(db, clock, notifier)


def get_statistics_service(db: DatabaseManager = Depends(get_db),
                           clock: Clock = Depends(get_clock)) -> StatisticsService:
    return StatisticsService(db, clock)


def get_export_service(db: DatabaseManager = Depends(get_db),
                       clock: Clock = Depends(get_clock)) -> ExportService:
    return ExportService(db, clock)
