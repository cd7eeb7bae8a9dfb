"""
Domain models.
"""

from .base import BaseEntity, TimestampMixin
from .package import PackageType, MealPackage, UserPackage
from .menu import MenuCategory, DailyMenu, MenuItem
from .order import Order, OrderItem
from .purchase import PurchaseStatus, PurchaseRequest
from .user import UserRole, User, CurrentUser

__all__ = [
    "BaseEntity",
    "TimestampMixin",
    "PackageType",
    "MealPackage",
    "UserPackage",
    "MenuCategory",
    "DailyMenu",
    "MenuItem",
    "Order",
    "OrderItem",
    "PurchaseStatus",
    "PurchaseRequest",
    "UserRole",
    "User",
    "CurrentUser",
]
