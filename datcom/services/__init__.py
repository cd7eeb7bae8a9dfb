"""
Business logic services.
Contains service layer implementations for ordering, packages and menus.
"""

from .auth_service import AuthService
from .confirmation_service import ConfirmationService
from .export_service import ExportService
from .meal_package_service import MealPackageService
from .menu_service import MenuService
from .notification_service import NotificationService, notification_service
from .order_service import OrderService
from .purchase_service import PurchaseService
from .statistics_service import StatisticsService
from .user_package_service import UserPackageService
from .user_service import UserService

__all__ = [
    "AuthService",
    "ConfirmationService",
    "ExportService",
    "MealPackageService",
    "MenuService",
    "NotificationService",
    "OrderService",
    "PurchaseService",
    "StatisticsService",
    "UserPackageService",
    "UserService",
    "notification_service",
]
