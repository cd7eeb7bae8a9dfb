"""
套餐购买申请服务
用户提交购买申请，管理员线下收款后审核通过或拒绝

业务规则：
- 同一用户对同一套餐模板最多一个待处理申请，不同模板可并存
- 申请一旦通过或拒绝即为终态
- 通过时创建用户套餐；用户尚无默认套餐时设为默认
- 通过后的邮件通知不影响审核结果
"""

import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import BackgroundTasks

from ..core.clock import Clock, system_clock
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import (
    PackageNotFoundError,
    RequestAlreadyExistsError,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    UserNotFoundError,
)
from ..models.package import PackageType, UserPackage
from ..models.purchase import PurchaseRequest, PurchaseStatus
from .notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

_SELECT_WITH_NAME = """
SELECT pr.*, mp.name AS package_name
FROM purchase_requests pr
LEFT JOIN meal_packages mp ON mp.package_id = pr.meal_package_id
"""


class PurchaseService:
    """套餐购买申请服务"""

    def __init__(self, db: DatabaseManager = None, clock: Clock = None,
                 notifier: NotificationService = None):
        self.db = db or db_manager
        self.clock = clock or system_clock
        self.notifier = notifier or notification_service

    def create_purchase_request(self, user_id: int, meal_package_id: int) -> PurchaseRequest:
        """
        提交购买申请

        Raises:
            PackageNotFoundError: 套餐模板不存在或已下架
            RequestAlreadyExistsError: 该模板已有待处理申请
        """
        template = self.db.fetch_one(
            "SELECT * FROM meal_packages WHERE package_id = ? AND is_active = TRUE",
            [meal_package_id]
        )
        if not template:
            raise PackageNotFoundError(details={"meal_package_id": meal_package_id})

        with self.db.transaction():
            pending = self.db.fetch_value(
                """SELECT request_id FROM purchase_requests
                   WHERE user_id = ? AND meal_package_id = ? AND status = 'pending'""",
                [user_id, meal_package_id]
            )
            if pending is not None:
                raise RequestAlreadyExistsError(details={"request_id": pending})

            request_id = self.db.fetch_value(
                """INSERT INTO purchase_requests(user_id, meal_package_id, status, requested_at)
                   VALUES (?,?,'pending',?) RETURNING request_id""",
                [user_id, meal_package_id, self.clock.utcnow()]
            )
            self.db.log_operation("purchase_request", {"request_id": request_id,
                                                       "meal_package_id": meal_package_id},
                                  user_id=user_id, actor_id=user_id)

        logger.info("purchase request %s created by user %s for package %s",
                    request_id, user_id, meal_package_id)
        return self.get_request(request_id)

    def approve_purchase_request(self, request_id: int, admin_id: int,
                                 background_tasks: Optional[BackgroundTasks] = None) -> UserPackage:
        """
        审核通过购买申请并发放用户套餐

        状态检查和状态更新在同一事务内，UPDATE 只认 pending 状态，
        并发审核同一申请时只有一个能成功

        Args:
            request_id: 申请ID
            admin_id: 审核管理员ID
            background_tasks: 在HTTP请求中传入时，邮件在响应发出后发送

        Returns:
            UserPackage: 新创建的用户套餐
        """
        now = self.clock.utcnow()

        with self.db.transaction():
            request = self._get_pending_request(request_id)
            template = self.db.fetch_one(
                "SELECT * FROM meal_packages WHERE package_id = ?", [request.meal_package_id]
            )
            if not template:
                raise PackageNotFoundError(details={"meal_package_id": request.meal_package_id})
            user = self.db.fetch_one("SELECT * FROM users WHERE id = ?", [request.user_id])
            if not user:
                raise UserNotFoundError(details={"user_id": request.user_id})

            self._claim_pending_request(request_id, PurchaseStatus.APPROVED, admin_id, now)

            expires_at = now + timedelta(days=template["valid_days"])
            package_type = template["package_type"] or PackageType.NORMAL.value
            user_package_id = self.db.fetch_value(
                """INSERT INTO user_packages(user_id, meal_package_id, package_type, remaining_turns,
                                             purchased_at, expires_at, is_active)
                   VALUES (?,?,?,?,?,?,TRUE) RETURNING user_package_id""",
                [request.user_id, request.meal_package_id, package_type,
                 template["turns"], now, expires_at]
            )
            self.db.execute(
                "UPDATE users SET active_package_id = ? WHERE id = ? AND active_package_id IS NULL",
                [user_package_id, request.user_id]
            )
            self.db.log_operation("purchase_approve",
                                  {"request_id": request_id, "user_package_id": user_package_id},
                                  user_id=request.user_id, actor_id=admin_id)

        logger.info("purchase request %s approved by %s, user_package %s",
                    request_id, admin_id, user_package_id)

        notify_args = (user["email"], user["name"] or user["email"], template["name"],
                       template["turns"], template["price"], now)
        if background_tasks is not None:
            background_tasks.add_task(self._notify_approved, *notify_args)
        else:
            self._notify_approved(*notify_args)

        row = self.db.fetch_one(
            """SELECT up.*, mp.name AS package_name FROM user_packages up
               LEFT JOIN meal_packages mp ON mp.package_id = up.meal_package_id
               WHERE up.user_package_id = ?""",
            [user_package_id]
        )
        return UserPackage(**row)

    def reject_purchase_request(self, request_id: int, admin_id: int) -> PurchaseRequest:
        with self.db.transaction():
            self._get_pending_request(request_id)
            self._claim_pending_request(request_id, PurchaseStatus.REJECTED, admin_id,
                                        self.clock.utcnow())
            self.db.log_operation("purchase_reject", {"request_id": request_id}, actor_id=admin_id)
        logger.info("purchase request %s rejected by %s", request_id, admin_id)
        return self.get_request(request_id)

    def get_request(self, request_id: int) -> PurchaseRequest:
        row = self.db.fetch_one(_SELECT_WITH_NAME + " WHERE pr.request_id = ?", [request_id])
        if not row:
            raise RequestNotFoundError(details={"request_id": request_id})
        return PurchaseRequest(**row)

    def list_purchase_requests(self, status: Optional[PurchaseStatus] = None) -> List[PurchaseRequest]:
        if status is None:
            rows = self.db.fetch_all(
                _SELECT_WITH_NAME + " ORDER BY pr.requested_at DESC, pr.request_id DESC"
            )
        else:
            rows = self.db.fetch_all(
                _SELECT_WITH_NAME + " WHERE pr.status = ? ORDER BY pr.requested_at DESC, pr.request_id DESC",
                [PurchaseStatus(status).value]
            )
        return [PurchaseRequest(**row) for row in rows]

    def get_my_purchase_requests(self, user_id: int) -> List[PurchaseRequest]:
        rows = self.db.fetch_all(
            _SELECT_WITH_NAME + " WHERE pr.user_id = ? ORDER BY pr.requested_at DESC, pr.request_id DESC",
            [user_id]
        )
        return [PurchaseRequest(**row) for row in rows]

    def _get_pending_request(self, request_id: int) -> PurchaseRequest:
        request = self.get_request(request_id)
        if request.status != PurchaseStatus.PENDING.value:
            raise RequestAlreadyProcessedError(
                details={"request_id": request_id, "status": request.status}
            )
        return request

    def _claim_pending_request(self, request_id: int, status: PurchaseStatus,
                               admin_id: int, processed_at) -> None:
        # 只有仍为 pending 的申请会被更新
        claimed = self.db.fetch_value(
            """UPDATE purchase_requests
               SET status = ?, processed_at = ?, processed_by = ?
               WHERE request_id = ? AND status = 'pending'
               RETURNING request_id""",
            [PurchaseStatus(status).value, processed_at, admin_id, request_id]
        )
        if claimed is None:
            current = self.get_request(request_id)
            raise RequestAlreadyProcessedError(
                details={"request_id": request_id, "status": current.status}
            )

    def _notify_approved(self, *args) -> None:
        # 通知失败不影响审核结果
        try:
            self.notifier.notify_purchase_approved(*args)
        except Exception:
            logger.exception("purchase approved notification failed")
