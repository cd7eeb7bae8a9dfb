"""
测试配置文件
提供测试所需的fixtures：内存数据库、固定时钟、用户/套餐/菜单工厂
"""

import os

# 必须在导入应用模块前设置，全局 db_manager 才会使用内存库
os.environ.setdefault("DATABASE_URL", "duckdb://:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from ..api.deps import get_clock, get_db, get_notifier
from ..app import create_app
from ..core.clock import LOCAL_TZ, Clock
from ..core.database import DatabaseManager
from ..core.security import create_access_token
from ..models.user import UserRole
from ..services.menu_service import MenuService
from ..services.user_service import UserService

MENU_TEXT = """MÓN MỚI
1. Gà kho gừng, Cá chiên
MÓN MỖI NGÀY
- Thịt kho trứng, Canh chua
MÓN ĐẶC BIỆT
☆ Bò lúc lắc
A/C đặt cơm trước 10h45 nhé"""


class FixedClock(Clock):
    """固定时间的时钟，时间以 UTC+7 本地时间设置"""

    def __init__(self, local: datetime):
        self.set_local(local)

    def set_local(self, local: datetime):
        self.current = local.replace(tzinfo=LOCAL_TZ).astimezone(timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


class RecordingNotifier:
    """记录调用参数的通知替身"""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.otp_calls = []
        self.fail = fail

    def notify_purchase_approved(self, email, name, package_name, turns, price, timestamp):
        self.calls.append({"email": email, "name": name, "package_name": package_name,
                           "turns": turns, "price": price, "timestamp": timestamp})
        if self.fail:
            raise RuntimeError("smtp down")
        return True

    def notify_otp(self, email, name, otp, expire_minutes=10):
        self.otp_calls.append({"email": email, "name": name, "otp": otp,
                               "expire_minutes": expire_minutes})
        return not self.fail

    @property
    def last_otp(self):
        return self.otp_calls[-1]["otp"]


@pytest.fixture
def clock():
    """本地时间 2025-03-10 10:15，落在默认订餐窗口内"""
    return FixedClock(datetime(2025, 3, 10, 10, 15))


@pytest.fixture
def test_db():
    """测试数据库"""
    db = DatabaseManager(":memory:")
    yield db
    db.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def admin(test_db):
    return UserService(test_db).get_or_create_user("admin@example.com", "Admin", role=UserRole.ADMIN)


@pytest.fixture
def user(test_db):
    return UserService(test_db).get_or_create_user("alice@example.com", "Alice")


@pytest.fixture
def make_template(test_db):
    """创建套餐模板"""
    def _make(name="10 次套餐", turns=10, price=350000, valid_days=30,
              package_type="normal", is_active=True):
        return test_db.fetch_value(
            """INSERT INTO meal_packages(name, turns, price, valid_days, package_type, is_active)
               VALUES (?,?,?,?,?,?) RETURNING package_id""",
            [name, turns, price, valid_days, package_type, is_active]
        )
    return _make


@pytest.fixture
def make_package(test_db, clock, make_template):
    """直接给用户发放一个用户套餐，返回 user_package_id"""
    def _make(user_id, turns=5, expires_in_days=10, package_type="normal",
              is_active=True, template_id=None):
        template_id = template_id or make_template(package_type=package_type)
        now = clock.utcnow()
        return test_db.fetch_value(
            """INSERT INTO user_packages(user_id, meal_package_id, package_type, remaining_turns,
                                         purchased_at, expires_at, is_active)
               VALUES (?,?,?,?,?,?,?) RETURNING user_package_id""",
            [user_id, template_id, package_type, turns, now,
             now + timedelta(days=expires_in_days), is_active]
        )
    return _make


@pytest.fixture
def today_menu(test_db, clock, admin):
    """今日菜单，窗口 10:00 - 10:45"""
    return MenuService(test_db, clock).create_menu(MENU_TEXT, created_by=admin.id)


@pytest.fixture
def app(test_db, clock, notifier):
    application = create_app()
    application.dependency_overrides[get_db] = lambda: test_db
    application.dependency_overrides[get_clock] = lambda: clock
    application.dependency_overrides[get_notifier] = lambda: notifier
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, role='user', email=user.email)}"}


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(admin.id, role='admin', email=admin.email)}"}
