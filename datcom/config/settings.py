import os
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://data/datcom.duckdb"

    # JWT配置
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # 注册验证码有效期与密码哈希迭代次数
    otp_expire_minutes: int = 10
    password_hash_iterations: int = 200_000

    # 管理员邮箱，注册或开发登录建档时授予admin角色
    admin_emails: List[str] = []

    # 默认订餐时间窗口（UTC+7 本地时间）
    default_begin_at: str = "10:00"
    default_end_at: str = "10:45"

    # 邮件通知配置，未配置 smtp_host 时仅记录日志
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "noreply@datcom.local"
    smtp_use_tls: bool = True

    # API配置
    api_title: str = "Datcom API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 开发模式，开启后才提供免密码的开发登录
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


def load_settings(environment: Optional[str] = None) -> Settings:
    """按 APP_ENV 选择配置类，development 使用开发配置"""
    environment = (environment or os.getenv("APP_ENV", "production")).lower()
    if environment == "development":
        from .environments.development import DevelopmentSettings
        return DevelopmentSettings()
    return Settings()


# 全局设置实例
settings = load_settings()
