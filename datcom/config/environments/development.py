from typing import List

from ..settings import Settings


class DevelopmentSettings(Settings):
    """本地开发配置：调试日志和独立的数据库文件"""
    debug: bool = True
    log_level: str = "DEBUG"
    database_url: str = "duckdb://data/datcom_dev.duckdb"
    admin_emails: List[str] = ["admin@datcom.local"]
