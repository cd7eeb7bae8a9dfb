import pytest

from ..config.settings import Settings
from ..core.exceptions import (
    DevLoginDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidOtpError,
    UserBlockedError,
    UserNotFoundError,
    UserNotVerifiedError,
    ValidationError,
)
from ..core.security import hash_password, verify_password
from ..services import auth_service
from ..services.auth_service import AuthService
from ..services.user_service import UserService
from .conftest import RecordingNotifier


@pytest.fixture
def service(test_db, clock, notifier):
    return AuthService(test_db, clock, notifier, config=Settings(debug=False, admin_emails=["boss@example.com"]))


def register_and_verify(service, notifier, email="bob@example.com", password="secret123"):
    service.register("Bob", email, password)
    return service.verify_otp(email, notifier.last_otp)


class TestPasswordHashing:
    def test_hash_roundtrip(self):
        stored = hash_password("secret123", iterations=1000)
        assert stored.startswith("pbkdf2_sha256$1000$")
        assert verify_password("secret123", stored)
        assert not verify_password("secret124", stored)

    def test_same_password_gets_different_salt(self):
        assert hash_password("secret123") != hash_password("secret123")

    def test_missing_or_malformed_hash(self):
        assert not verify_password("secret123", None)
        assert not verify_password("secret123", "not-a-hash")


class TestRegistration:
    """注册与验证码"""

    def test_register_sends_otp_and_stores_hashes(self, service, test_db, notifier):
        result = service.register("Bob", "Bob@Example.com", "secret123")

        assert result == {"email": "bob@example.com", "requires_otp": True}
        assert len(notifier.otp_calls) == 1
        otp = notifier.last_otp
        assert len(otp) == 6 and otp.isdigit()

        row = test_db.fetch_one("SELECT * FROM users WHERE email = 'bob@example.com'")
        assert row["is_verified"] is False
        assert row["password_hash"] != "secret123"
        assert row["otp_hash"] != otp

    def test_duplicate_email(self, service, user):
        with pytest.raises(EmailExistsError):
            service.register("Alice", "ALICE@example.com", "secret123")

    def test_invalid_email(self, service):
        with pytest.raises(ValidationError):
            service.register("Bob", "bob.example.com", "secret123")

    def test_verify_activates_account(self, service, notifier):
        user = register_and_verify(service, notifier)
        assert user.is_verified is True
        assert user.role == "user"

    def test_wrong_otp(self, service, monkeypatch):
        monkeypatch.setattr(auth_service, "generate_otp", lambda: "123456")
        service.register("Bob", "bob@example.com", "secret123")
        with pytest.raises(InvalidOtpError):
            service.verify_otp("bob@example.com", "654321")

    def test_expired_otp(self, service, clock, notifier):
        service.register("Bob", "bob@example.com", "secret123")
        clock.advance(minutes=11)
        with pytest.raises(InvalidOtpError):
            service.verify_otp("bob@example.com", notifier.last_otp)

    def test_otp_single_use(self, service, notifier):
        register_and_verify(service, notifier)
        with pytest.raises(InvalidOtpError):
            service.verify_otp("bob@example.com", notifier.last_otp)

    def test_verify_unknown_email(self, service):
        with pytest.raises(UserNotFoundError):
            service.verify_otp("ghost@example.com", "123456")

    def test_resend_replaces_otp(self, service, clock, notifier, monkeypatch):
        codes = iter(["111111", "222222"])
        monkeypatch.setattr(auth_service, "generate_otp", lambda: next(codes))
        service.register("Bob", "bob@example.com", "secret123")
        clock.advance(minutes=8)

        assert service.resend_otp("bob@example.com") is True
        clock.advance(minutes=8)

        assert [c["otp"] for c in notifier.otp_calls] == ["111111", "222222"]
        with pytest.raises(InvalidOtpError):
            service.verify_otp("bob@example.com", "111111")
        assert service.verify_otp("bob@example.com", "222222").is_verified

    def test_resend_for_verified_account(self, service, notifier):
        register_and_verify(service, notifier)
        assert service.resend_otp("bob@example.com") is False
        assert len(notifier.otp_calls) == 1

    def test_configured_admin_email_registers_as_admin(self, service, notifier):
        user = register_and_verify(service, notifier, email="boss@example.com")
        assert user.role == "admin"

    def test_notification_failure_keeps_registration(self, test_db, clock):
        failing = RecordingNotifier(fail=True)
        service = AuthService(test_db, clock, failing, config=Settings())

        service.register("Bob", "bob@example.com", "secret123")

        assert test_db.fetch_value("SELECT COUNT(*) FROM users WHERE email = 'bob@example.com'") == 1


class TestLogin:
    """密码登录"""

    def test_login(self, service, notifier):
        registered = register_and_verify(service, notifier)
        user = service.login(" BOB@example.com ", "secret123")
        assert user.id == registered.id

    def test_wrong_password(self, service, notifier):
        register_and_verify(service, notifier)
        with pytest.raises(InvalidCredentialsError):
            service.login("bob@example.com", "secret124")

    def test_unknown_email(self, service):
        with pytest.raises(InvalidCredentialsError):
            service.login("ghost@example.com", "secret123")

    def test_unverified_account(self, service):
        service.register("Bob", "bob@example.com", "secret123")
        with pytest.raises(UserNotVerifiedError):
            service.login("bob@example.com", "secret123")

    def test_blocked_account(self, service, test_db, notifier, admin):
        user = register_and_verify(service, notifier)
        UserService(test_db).block_user(user.id, actor_id=admin.id)

        with pytest.raises(UserBlockedError):
            service.login("bob@example.com", "secret123")

    def test_provisioned_user_without_password_cannot_login(self, service, user):
        with pytest.raises(InvalidCredentialsError):
            service.login(user.email, "anything")


class TestDevLogin:
    """开发登录"""

    def test_disabled_outside_debug(self, service):
        with pytest.raises(DevLoginDisabledError):
            service.dev_login("bob@example.com")

    def test_creates_user_in_debug(self, test_db, clock, notifier):
        service = AuthService(test_db, clock, notifier, config=Settings(debug=True))
        user = service.dev_login("Bob@Example.com", "Bob")
        assert user.email == "bob@example.com"
        assert user.is_verified is True

    def test_blocked_user_rejected(self, test_db, clock, notifier, user, admin):
        UserService(test_db).block_user(user.id, actor_id=admin.id)
        service = AuthService(test_db, clock, notifier, config=Settings(debug=True))
        with pytest.raises(UserBlockedError):
            service.dev_login(user.email)
