import pytest
from datetime import date, datetime

from ..core.exceptions import MenuNotFoundError, ValidationError
from ..services.menu_service import MenuService
from .conftest import MENU_TEXT


class TestMenuService:
    """菜单服务测试"""

    def test_create_defaults(self, test_db, clock, admin):
        menu = MenuService(test_db, clock).create_menu(MENU_TEXT, created_by=admin.id)

        assert menu.menu_date == date(2025, 3, 10)
        assert (menu.begin_at, menu.end_at) == ("10:00", "10:45")
        assert menu.is_locked is False
        assert [i.category for i in menu.items] == ["new", "new", "daily", "daily", "special"]

    def test_create_rejects_bad_time(self, test_db, clock, admin):
        with pytest.raises(ValidationError):
            MenuService(test_db, clock).create_menu(MENU_TEXT, created_by=admin.id, begin_at="7h")

    def test_update_replaces_items_when_text_changes(self, test_db, clock, admin, today_menu):
        service = MenuService(test_db, clock)
        updated = service.update_menu(today_menu.menu_id, admin.id, raw_content="Phở bò, Bún chả")

        assert [i.name for i in updated.items] == ["Phở bò", "Bún chả"]
        assert test_db.fetch_value("SELECT COUNT(*) FROM menu_items") == 2

    def test_update_with_same_text_keeps_items(self, test_db, clock, admin, today_menu):
        service = MenuService(test_db, clock)
        updated = service.update_menu(today_menu.menu_id, admin.id, raw_content=MENU_TEXT, end_at="11:00")

        assert [i.item_id for i in updated.items] == [i.item_id for i in today_menu.items]
        assert updated.end_at == "11:00"

    def test_lock_and_unlock(self, test_db, clock, admin, today_menu):
        service = MenuService(test_db, clock)
        assert service.lock_menu(today_menu.menu_id, admin.id).is_locked is True
        assert service.unlock_menu(today_menu.menu_id, admin.id).is_locked is False

    def test_today_menus_can_order(self, test_db, clock, admin, today_menu):
        service = MenuService(test_db, clock)
        assert [m.can_order for m in service.get_today_menus()] == [True]

        clock.set_local(datetime(2025, 3, 10, 10, 50))
        assert [m.can_order for m in service.get_today_menus()] == [False]

    def test_resolve_today_menu_picks_lowest_id(self, test_db, clock, admin, today_menu):
        service = MenuService(test_db, clock)
        service.create_menu("Bún chả", created_by=admin.id)
        assert service.resolve_today_menu().menu_id == today_menu.menu_id

    def test_resolve_today_menu_none(self, test_db, clock):
        assert MenuService(test_db, clock).resolve_today_menu() is None

    def test_unknown_menu(self, test_db, clock):
        with pytest.raises(MenuNotFoundError):
            MenuService(test_db, clock).get_menu(42)
