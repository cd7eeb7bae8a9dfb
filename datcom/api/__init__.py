"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import auth, meal_packages, menus, orders, purchases, statistics, user_packages, users

api_router = APIRouter()

# 包含所有v1路由
api_router.include_router(auth.router, prefix="/auth", tags=["认证"])
api_router.include_router(users.router, prefix="/users", tags=["用户"])
api_router.include_router(meal_packages.router, prefix="/meal-packages", tags=["套餐目录"])
api_router.include_router(user_packages.router, prefix="/user-packages", tags=["我的套餐"])
api_router.include_router(purchases.router, prefix="/package-purchases", tags=["购买申请"])
api_router.include_router(menus.router, prefix="/daily-menus", tags=["每日菜单"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单"])
api_router.include_router(statistics.router, prefix="/statistics", tags=["统计"])
