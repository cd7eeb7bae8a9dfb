import pytest

from ..config.settings import settings


@pytest.fixture
def debug_mode(monkeypatch):
    monkeypatch.setattr(settings, "debug", True)


def register(client, notifier, email="bob@example.com", password="secret123"):
    response = client.post("/api/v1/auth/register",
                           json={"name": "Bob", "email": email, "password": password})
    assert response.status_code == 201
    return notifier.last_otp


class TestAuthAPI:
    """认证与权限API测试"""

    def test_register_verify_login(self, client, notifier):
        otp = register(client, notifier)

        verified = client.post("/api/v1/auth/verify-otp", json={"email": "bob@example.com", "otp": otp})
        assert verified.status_code == 200
        assert verified.json()["data"]["role"] == "user"

        response = client.post("/api/v1/auth/login", json={"email": "Bob@Example.com", "password": "secret123"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "bob@example.com"

        me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "bob@example.com"
        assert me.json()["data"]["active_package"] is None

    def test_login_before_verification(self, client, notifier):
        register(client, notifier)
        response = client.post("/api/v1/auth/login", json={"email": "bob@example.com", "password": "secret123"})
        assert response.status_code == 403
        assert response.json()["error_code"] == "USER_NOT_VERIFIED"

    def test_login_wrong_password(self, client, notifier):
        otp = register(client, notifier)
        client.post("/api/v1/auth/verify-otp", json={"email": "bob@example.com", "otp": otp})

        response = client.post("/api/v1/auth/login", json={"email": "bob@example.com", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_CREDENTIALS"

    def test_login_requires_password(self, client):
        response = client.post("/api/v1/auth/login", json={"email": "admin@example.com"})
        assert response.status_code == 422

    def test_register_duplicate_email(self, client, user):
        response = client.post("/api/v1/auth/register",
                               json={"name": "A", "email": "alice@example.com", "password": "secret123"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "EMAIL_EXISTS"

    def test_register_short_password(self, client):
        response = client.post("/api/v1/auth/register",
                               json={"name": "Bob", "email": "bob@example.com", "password": "123"})
        assert response.status_code == 422

    def test_wrong_otp(self, client, notifier):
        otp = register(client, notifier)
        wrong = "000000" if otp != "000000" else "111111"
        response = client.post("/api/v1/auth/verify-otp", json={"email": "bob@example.com", "otp": wrong})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_OTP"

    def test_resend_otp(self, client, notifier):
        register(client, notifier)
        response = client.post("/api/v1/auth/resend-otp", json={"email": "bob@example.com"})
        assert response.status_code == 200
        assert response.json()["data"]["sent"] is True
        assert len(notifier.otp_calls) == 2

    def test_blocked_user_cannot_login(self, client, notifier, admin_headers):
        otp = register(client, notifier)
        user_id = client.post("/api/v1/auth/verify-otp",
                              json={"email": "bob@example.com", "otp": otp}).json()["data"]["user_id"]

        blocked = client.patch(f"/api/v1/users/{user_id}/block", headers=admin_headers)
        assert blocked.status_code == 200
        assert blocked.json()["data"]["is_blocked"] is True

        response = client.post("/api/v1/auth/login", json={"email": "bob@example.com", "password": "secret123"})
        assert response.status_code == 403
        assert response.json()["error_code"] == "USER_BLOCKED"

        client.patch(f"/api/v1/users/{user_id}/unblock", headers=admin_headers)
        response = client.post("/api/v1/auth/login", json={"email": "bob@example.com", "password": "secret123"})
        assert response.status_code == 200

    def test_dev_login_disabled_by_default(self, client, monkeypatch):
        monkeypatch.setattr(settings, "debug", False)
        monkeypatch.setattr(settings, "admin_emails", ["boss@example.com"])
        response = client.post("/api/v1/auth/dev-login", json={"email": "boss@example.com"})
        assert response.status_code == 403
        assert response.json()["error_code"] == "DEV_LOGIN_DISABLED"
        assert "data" not in response.json()

    def test_dev_login_in_debug_mode(self, client, debug_mode):
        response = client.post("/api/v1/auth/dev-login", json={"email": "Bob@Example.com", "name": "Bob"})
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "user"

    def test_dev_login_grants_admin_for_configured_email(self, client, debug_mode, monkeypatch):
        monkeypatch.setattr(settings, "admin_emails", ["boss@example.com"])
        response = client.post("/api/v1/auth/dev-login", json={"email": "boss@example.com"})
        assert response.json()["data"]["role"] == "admin"

    def test_dev_login_rejects_invalid_email(self, client, debug_mode):
        response = client.post("/api/v1/auth/dev-login", json={"email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_missing_token(self, client):
        response = client.get("/api/v1/users/me")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "AUTHENTICATION_REQUIRED"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/users/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_TOKEN"

    def test_admin_route_requires_admin(self, client, user_headers):
        response = client.get("/api/v1/users", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "ADMIN_REQUIRED"

    def test_admin_can_list_users(self, client, admin_headers, user):
        response = client.get("/api/v1/users", headers=admin_headers)
        assert response.status_code == 200
        assert {u["email"] for u in response.json()["data"]} == {"admin@example.com", "alice@example.com"}

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_admin_user_detail(self, client, admin_headers, user, make_package):
        make_package(user.id)
        response = client.get(f"/api/v1/users/{user.id}", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["email"] == "alice@example.com"
        assert len(data["packages"]) == 1

    def test_user_detail_requires_admin(self, client, user_headers, user):
        response = client.get(f"/api/v1/users/{user.id}", headers=user_headers)
        assert response.status_code == 403

    def test_cannot_block_admin(self, client, admin_headers, admin):
        response = client.patch(f"/api/v1/users/{admin.id}/block", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "CANNOT_BLOCK_ADMIN"

    def test_list_users_filtered(self, client, admin_headers, user):
        response = client.get("/api/v1/users?role=user", headers=admin_headers)
        assert [u["email"] for u in response.json()["data"]] == ["alice@example.com"]
