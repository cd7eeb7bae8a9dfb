import smtplib
from datetime import datetime

from ..config.settings import Settings
from ..services.notification_service import NotificationService


class BrokenSMTP:
    def __init__(self, *args, **kwargs):
        raise OSError("connection refused")


class TestNotificationService:
    """邮件通知测试"""

    def test_simulated_send_without_smtp_host(self, caplog):
        service = NotificationService(Settings(smtp_host=None))
        with caplog.at_level("INFO"):
            ok = service.notify_purchase_approved("alice@example.com", "Alice", "Gói 10",
                                                  10, 350000, datetime(2025, 3, 10, 3, 0))
        assert ok is True
        assert "simulated email" in caplog.text

    def test_smtp_failure_returns_false(self, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", BrokenSMTP)
        service = NotificationService(Settings(smtp_host="smtp.example.com"))

        ok = service.notify_purchase_approved("alice@example.com", "Alice", "Gói 10",
                                              10, 350000, datetime(2025, 3, 10, 3, 0))
        assert ok is False

    def test_empty_email_is_skipped(self):
        service = NotificationService(Settings(smtp_host=None))
        assert service.notify_purchase_approved("", "Alice", "Gói 10", 10, 1, datetime(2025, 3, 10)) is False

    def test_render_uses_local_time(self):
        service = NotificationService(Settings(smtp_host=None))
        text, html = service._render_purchase_approved("Alice", "Gói 10", 10, 350000,
                                                       datetime(2025, 3, 10, 3, 0))
        assert "2025-03-10 10:00 (UTC+7)" in text
        assert "350,000" in html

    def test_otp_mail_carries_code(self, monkeypatch):
        service = NotificationService(Settings(smtp_host=None))
        sent = []
        monkeypatch.setattr(service, "_send_email",
                            lambda to, subject, text, html: sent.append((to, text, html)) or True)

        assert service.notify_otp("bob@example.com", "Bob", "042137", expire_minutes=10) is True
        to, text, html = sent[0]
        assert to == "bob@example.com"
        assert "042137" in text and "042137" in html
        assert "10 分钟" in text

    def test_otp_smtp_failure_returns_false(self, monkeypatch):
        monkeypatch.setattr(smtplib, "SMTP", BrokenSMTP)
        service = NotificationService(Settings(smtp_host="smtp.example.com"))
        assert service.notify_otp("bob@example.com", "Bob", "042137") is False
