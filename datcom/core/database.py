"""
数据库连接和管理模块
DuckDB 单连接 + 可重入锁，提供事务上下文和字典化查询接口

数据库表说明：
- users: 用户、登录凭据、验证与封禁状态及当前默认套餐指针
- meal_packages: 套餐目录（模板）
- user_packages: 用户已购套餐（次数账本）
- purchase_requests: 套餐购买申请
- daily_menus / menu_items: 每日菜单及菜品
- orders / order_items: 订单及订单菜品
- logs: 系统操作日志
"""

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb

from .exceptions import (
    BaseApplicationError,
    ConcurrencyError,
    DatabaseError,
    IntegrityConflictError,
)
from ..config.settings import settings

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

# 完整的表结构定义
SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS users_id_seq;
CREATE TABLE IF NOT EXISTS users (
  id INTEGER DEFAULT nextval('users_id_seq') PRIMARY KEY,
  email TEXT UNIQUE NOT NULL,
  name TEXT,
  role TEXT CHECK(role IN ('user','admin')) NOT NULL DEFAULT 'user',
  password_hash TEXT,
  is_verified BOOLEAN DEFAULT FALSE,
  is_blocked BOOLEAN DEFAULT FALSE,
  otp_hash TEXT,
  otp_expires_at TIMESTAMP,
  active_package_id INTEGER,
  created_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS meal_packages_id_seq;
CREATE TABLE IF NOT EXISTS meal_packages (
  package_id INTEGER DEFAULT nextval('meal_packages_id_seq') PRIMARY KEY,
  name TEXT NOT NULL,
  turns INTEGER NOT NULL CHECK(turns > 0),
  price INTEGER NOT NULL CHECK(price >= 0),
  valid_days INTEGER NOT NULL CHECK(valid_days > 0),
  package_type TEXT CHECK(package_type IN ('normal','no-rice')) NOT NULL DEFAULT 'normal',
  is_active BOOLEAN DEFAULT TRUE,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

-- remaining_turns 不加 >= 0 约束：确认扣次不做下限保护
CREATE SEQUENCE IF NOT EXISTS user_packages_id_seq;
CREATE TABLE IF NOT EXISTS user_packages (
  user_package_id INTEGER DEFAULT nextval('user_packages_id_seq') PRIMARY KEY,
  user_id INTEGER NOT NULL,
  meal_package_id INTEGER NOT NULL,
  package_type TEXT CHECK(package_type IN ('normal','no-rice')) NOT NULL DEFAULT 'normal',
  remaining_turns INTEGER NOT NULL,
  purchased_at TIMESTAMP NOT NULL,
  expires_at TIMESTAMP NOT NULL,
  is_active BOOLEAN DEFAULT TRUE
);

CREATE INDEX IF NOT EXISTS idx_user_packages_user ON user_packages(user_id);

CREATE SEQUENCE IF NOT EXISTS purchase_requests_id_seq;
CREATE TABLE IF NOT EXISTS purchase_requests (
  request_id INTEGER DEFAULT nextval('purchase_requests_id_seq') PRIMARY KEY,
  user_id INTEGER NOT NULL,
  meal_package_id INTEGER NOT NULL,
  status TEXT CHECK(status IN ('pending','approved','rejected')) NOT NULL DEFAULT 'pending',
  requested_at TIMESTAMP NOT NULL,
  processed_at TIMESTAMP,
  processed_by INTEGER
);

CREATE INDEX IF NOT EXISTS idx_purchase_requests_user ON purchase_requests(user_id);

CREATE SEQUENCE IF NOT EXISTS daily_menus_id_seq;
CREATE TABLE IF NOT EXISTS daily_menus (
  menu_id INTEGER DEFAULT nextval('daily_menus_id_seq') PRIMARY KEY,
  menu_date DATE NOT NULL,
  raw_content TEXT NOT NULL,
  begin_at TEXT NOT NULL DEFAULT '10:00',
  end_at TEXT NOT NULL DEFAULT '10:45',
  is_locked BOOLEAN DEFAULT FALSE,
  created_by INTEGER,
  created_at TIMESTAMP DEFAULT now()
);

-- 同一天允许多份菜单，不加唯一约束
CREATE INDEX IF NOT EXISTS idx_daily_menus_date ON daily_menus(menu_date);

CREATE SEQUENCE IF NOT EXISTS menu_items_id_seq;
CREATE TABLE IF NOT EXISTS menu_items (
  item_id INTEGER DEFAULT nextval('menu_items_id_seq') PRIMARY KEY,
  menu_id INTEGER NOT NULL,
  name TEXT NOT NULL,
  category TEXT CHECK(category IN ('new','daily','special')) NOT NULL DEFAULT 'daily'
);

CREATE INDEX IF NOT EXISTS idx_menu_items_menu ON menu_items(menu_id);

CREATE SEQUENCE IF NOT EXISTS orders_id_seq;
CREATE TABLE IF NOT EXISTS orders (
  order_id INTEGER DEFAULT nextval('orders_id_seq') PRIMARY KEY,
  user_id INTEGER NOT NULL,
  menu_id INTEGER NOT NULL,
  user_package_id INTEGER NOT NULL,
  order_type TEXT CHECK(order_type IN ('normal','no-rice')) NOT NULL,
  is_confirmed BOOLEAN DEFAULT FALSE,
  ordered_at TIMESTAMP NOT NULL,
  updated_at TIMESTAMP
);

CREATE UNIQUE INDEX IF NOT EXISTS uniq_orders_user_menu ON orders(user_id, menu_id);
CREATE INDEX IF NOT EXISTS idx_orders_menu ON orders(menu_id);

CREATE SEQUENCE IF NOT EXISTS order_items_id_seq;
CREATE TABLE IF NOT EXISTS order_items (
  order_item_id INTEGER DEFAULT nextval('order_items_id_seq') PRIMARY KEY,
  order_id INTEGER NOT NULL,
  menu_item_id INTEGER NOT NULL,
  quantity INTEGER NOT NULL DEFAULT 1 CHECK(quantity >= 1),
  note TEXT DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  user_id INTEGER,
  actor_id INTEGER,
  action TEXT,
  detail_json TEXT,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_user ON logs(user_id);
CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


def _resolve_db_path(db_url: str) -> str:
    """duckdb://path 形式的连接串转换为文件路径"""
    if db_url.startswith("duckdb://"):
        db_url = db_url[len("duckdb://"):]
    if db_url in ("", MEMORY_DB, "/" + MEMORY_DB):
        return MEMORY_DB
    Path(db_url).parent.mkdir(parents=True, exist_ok=True)
    return db_url


def _rows_to_dicts(cursor) -> List[Dict[str, Any]]:
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


class DatabaseManager:
    """数据库管理器，封装所有数据库操作"""

    def __init__(self, db_path: Optional[str] = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self.db_path = db_path or _resolve_db_path(settings.database_url)

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """获取数据库连接"""
        with self._lock:
            if self._connection is None:
                self._connection = duckdb.connect(self.db_path)
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        """初始化数据库表结构"""
        try:
            self._connection.execute(SCHEMA_SQL)
        except Exception as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """初始化数据库（幂等）"""
        with self._lock:
            self.connection.execute(SCHEMA_SQL)

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        数据库事务上下文管理器

        持有锁直到提交或回滚；业务异常原样抛出，唯一约束冲突转换为
        IntegrityConflictError，其余数据库异常转换为 DatabaseError
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseApplicationError:
                self._rollback(conn)
                raise
            except duckdb.ConstraintException as e:
                self._rollback(conn)
                raise IntegrityConflictError(details={"reason": str(e)})
            except Exception as e:
                self._rollback(conn)
                if "conflict" in str(e).lower() or "serialization" in str(e).lower():
                    raise ConcurrencyError()
                logger.exception("transaction failed")
                raise DatabaseError(f"数据库操作失败: {e}")

    @staticmethod
    def _rollback(conn):
        try:
            conn.execute("ROLLBACK")
        except duckdb.Error as e:
            logger.warning("rollback failed: %s", e)

    def _run(self, query: str, params: Optional[list], fetch: str):
        with self._lock:
            try:
                cursor = self.connection.execute(query, params or [])
                if fetch == "all":
                    return _rows_to_dicts(cursor)
                if fetch == "value":
                    row = cursor.fetchone()
                    return row[0] if row else None
                return None
            except duckdb.ConstraintException as e:
                raise IntegrityConflictError(details={"reason": str(e)})
            except duckdb.Error as e:
                raise DatabaseError(f"Query execution failed: {e}")

    def execute(self, query: str, params: list = None):
        """执行写操作"""
        self._run(query, params, "none")

    def fetch_all(self, query: str, params: list = None) -> List[Dict[str, Any]]:
        """执行查询并以字典列表返回"""
        return self._run(query, params, "all")

    def fetch_one(self, query: str, params: list = None) -> Optional[Dict[str, Any]]:
        """执行查询并返回单条字典结果"""
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def fetch_value(self, query: str, params: list = None) -> Any:
        """执行查询并返回第一行第一列（也用于 INSERT ... RETURNING）"""
        return self._run(query, params, "value")

    def log_operation(self, action: str, detail: Dict[str, Any],
                      user_id: Optional[int] = None, actor_id: Optional[int] = None):
        """写入操作日志"""
        self.execute(
            "INSERT INTO logs(user_id, actor_id, action, detail_json) VALUES (?,?,?,?)",
            [user_id, actor_id, action, json.dumps(detail, default=str)]
        )


# 全局数据库管理器实例
db_manager = DatabaseManager()
