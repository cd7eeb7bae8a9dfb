import pytest

from ..core.exceptions import CannotBlockAdminError, UserNotFoundError, ValidationError
from ..services.user_service import UserService


@pytest.fixture
def service(test_db):
    return UserService(test_db)


class TestUserService:
    """用户查询与封禁"""

    def test_get_or_create_is_idempotent(self, service, user):
        again = service.get_or_create_user("  ALICE@example.com ", "Someone else")
        assert again.id == user.id
        assert again.name == "Alice"
        assert again.is_verified is True

    def test_get_or_create_rejects_bad_email(self, service):
        with pytest.raises(ValidationError):
            service.get_or_create_user("alice")

    def test_block_and_unblock(self, service, test_db, user, admin):
        blocked = service.block_user(user.id, actor_id=admin.id)
        assert blocked.is_blocked is True

        unblocked = service.unblock_user(user.id, actor_id=admin.id)
        assert unblocked.is_blocked is False

        actions = [r["action"] for r in test_db.fetch_all(
            "SELECT action FROM logs WHERE user_id = ? ORDER BY log_id", [user.id]
        )]
        assert actions == ["user_block", "user_unblock"]

    def test_cannot_block_admin(self, service, admin):
        with pytest.raises(CannotBlockAdminError):
            service.block_user(admin.id, actor_id=admin.id)
        assert service.get_user(admin.id).is_blocked is False

    def test_block_unknown_user(self, service, admin):
        with pytest.raises(UserNotFoundError):
            service.block_user(999, actor_id=admin.id)

    def test_list_filters(self, service, user, admin):
        service.get_or_create_user("carol@example.com", "Carol")
        service.block_user(user.id, actor_id=admin.id)

        assert [u.email for u in service.list_users(role="admin")] == ["admin@example.com"]
        assert [u.email for u in service.list_users(is_blocked=True)] == ["alice@example.com"]
        assert [u.email for u in service.list_users(search="CAR")] == ["carol@example.com"]
        assert len(service.list_users()) == 3

    def test_user_detail_lists_packages(self, service, user, make_package):
        first = make_package(user.id)
        second = make_package(user.id, package_type="no-rice")

        detail = service.get_user_detail(user.id)

        assert detail["user"]["email"] == "alice@example.com"
        assert "password_hash" not in detail["user"]
        assert {p["user_package_id"] for p in detail["packages"]} == {first, second}

    def test_user_detail_unknown_user(self, service):
        with pytest.raises(UserNotFoundError):
            service.get_user_detail(999)
