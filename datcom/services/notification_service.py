"""
邮件通知服务
注册验证码邮件，以及套餐购买申请通过后的通知邮件

未配置 smtp_host 时只记录一条模拟发送日志；发送失败只记日志并返回 False，
调用方的业务结果不受影响
"""

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ..config.settings import Settings, settings as default_settings
from ..core.clock import LOCAL_TZ

logger = logging.getLogger(__name__)


class NotificationService:
    """邮件通知服务"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def notify_purchase_approved(self, email: str, name: str, package_name: str,
                                 turns: int, price: int, timestamp: datetime) -> bool:
        """
        发送套餐购买成功邮件

        Args:
            email: 收件人邮箱
            name: 收件人姓名
            package_name: 套餐名称
            turns: 套餐次数
            price: 套餐价格
            timestamp: 审核通过时间（naive UTC）

        Returns:
            bool: 是否发送成功，从不抛出异常
        """
        if not email:
            logger.warning("purchase approved notification skipped: empty email")
            return False

        subject = f"🍚 套餐购买成功 - {package_name}"
        text, html = self._render_purchase_approved(name, package_name, turns, price, timestamp)
        return self._send_email(email, subject, text, html)

    def notify_otp(self, email: str, name: str, otp: str, expire_minutes: int = 10) -> bool:
        """发送注册验证码邮件，返回是否发送成功"""
        if not email:
            logger.warning("otp notification skipped: empty email")
            return False

        subject = "🍚 注册验证码 - Datcom 订餐系统"
        text = (
            f"{name} 您好，\n\n"
            f"您的注册验证码是：{otp}\n"
            f"验证码 {expire_minutes} 分钟内有效，请勿告诉他人。\n"
        )
        html = f"""
        <html>
            <body>
                <h2>{name} 您好</h2>
                <p>您的注册验证码是：</p>
                <p style="font-size: 24px; letter-spacing: 4px;"><strong>{otp}</strong></p>
                <p>验证码 {expire_minutes} 分钟内有效，请勿告诉他人。</p>
                <hr>
                <p><small>Datcom 订餐系统</small></p>
            </body>
        </html>
        """
        return self._send_email(email, subject, text, html)

    def _render_purchase_approved(self, name: str, package_name: str, turns: int,
                                  price: int, timestamp: datetime):
        local_time = timestamp
        if timestamp.tzinfo is None:
            local_time = timestamp.replace(tzinfo=timezone.utc)
        local_time = local_time.astimezone(LOCAL_TZ).strftime("%Y-%m-%d %H:%M")

        text = (
            f"{name} 您好，\n\n"
            f"您的套餐购买申请已通过。\n"
            f"套餐：{package_name}\n"
            f"次数：{turns}\n"
            f"价格：{price:,}\n"
            f"时间：{local_time} (UTC+7)\n"
        )
        html = f"""
        <html>
            <body>
                <h2>{name} 您好</h2>
                <p>您的套餐购买申请已通过。</p>
                <ul>
                    <li>套餐：{package_name}</li>
                    <li>次数：{turns}</li>
                    <li>价格：{price:,}</li>
                    <li>时间：{local_time} (UTC+7)</li>
                </ul>
                <hr>
                <p><small>Datcom 订餐系统</small></p>
            </body>
        </html>
        """
        return text, html

    def _send_email(self, to: str, subject: str, text: str, html: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.config.smtp_from_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        if not self.config.smtp_host:
            logger.info("[simulated email] to=%s subject=%s", to, subject)
            return True

        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=10) as server:
                if self.config.smtp_use_tls:
                    server.starttls()
                if self.config.smtp_username:
                    server.login(self.config.smtp_username, self.config.smtp_password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("failed to send email to %s: %s", to, e)
            return False

        logger.info("email sent to %s: %s", to, subject)
        return True


# 全局通知服务实例
notification_service = NotificationService()
