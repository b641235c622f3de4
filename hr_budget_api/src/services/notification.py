from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.db.base import utcnow
from src.db.models.notification import PeNotification
from src.db.models.security import User
from src.repositories.movement import MovementRepository
from src.repositories.notification import NotificationRepository
from src.schemas.notification import (
    CreateMovementNotificationRequest,
    NotificationCategory,
    NotificationCountDto,
    NotificationDto,
    NotificationFilterDto,
    NotificationListResponse,
    NotificationType,
)
from src.services.base import BaseService

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "SYSTEM"
MOVEMENT_PAGE_URL = "/Home/BudgetPEManagement?movementId={movement_id}"


def time_ago(created: datetime, now: Optional[datetime] = None) -> str:
    """Relative age label shown next to a notification."""
    now = now or datetime.now(tz=timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = (now - created).total_seconds()
    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{int(minutes)} minutes ago"
    if hours < 24:
        return f"{int(hours)} hours ago"
    if days < 7:
        return f"{int(days)} days ago"
    if days < 30:
        return f"{int(days / 7)} weeks ago"
    if days < 365:
        return f"{int(days / 30)} months ago"
    return f"{int(days / 365)} years ago"


def _parse_int(*candidates: Optional[str]) -> int:
    # First non-null candidate wins; empty or unparsable values become 0.
    value = next((c for c in candidates if c is not None), None)
    try:
        return int(str(value).strip()) if value is not None else 0
    except ValueError:
        return 0


class NotificationService(BaseService):
    """Bell notifications for PE movements: counting, listing, read state and creation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NotificationRepository(session)
        self.movements = MovementRepository(session)

    async def _sender_names(self, rows: Sequence[PeNotification]) -> Dict[str, Optional[str]]:
        """Resolve sender display names for a page of notifications in one query."""
        codes = {n.sender_emp_code for n in rows if n.sender_emp_code}
        if not codes:
            return {}
        result = await self.repo.execute(
            select(User.emp_code, User.name).where(User.emp_code.in_(codes))
        )
        names: Dict[str, Optional[str]] = {}
        for emp_code, name in result.all():
            names.setdefault(emp_code, name)
        return names

    def _to_dto(
        self, n: PeNotification, sender_names: Dict[str, Optional[str]], now: Optional[datetime] = None
    ) -> NotificationDto:
        return NotificationDto(
            notification_id=n.notification_id,
            movement_id=n.movement_id,
            notification_type=n.notification_type,
            notification_category=n.notification_category,
            sender_emp_code=n.sender_emp_code,
            sender_name=sender_names.get(n.sender_emp_code),
            sender_cost_center=n.sender_cost_center,
            recipient_emp_code=n.recipient_emp_code,
            recipient_cost_center=n.recipient_cost_center,
            title=n.title,
            message=n.message,
            hc=n.hc,
            base_wage=n.base_wage,
            pe_month=n.pe_month,
            pe_year=n.pe_year,
            company_id=n.company_id,
            action_url=n.action_url,
            is_read=n.is_read,
            has_attachment=n.has_attachment,
            upload_log_id=n.upload_log_id,
            email_sent=n.email_sent,
            created_date=n.created_date,
            time_ago=time_ago(n.created_date, now),
        )

    # PUBLIC_INTERFACE
    async def get_unread_count(self, emp_code: str) -> int:
        return await self.repo.count_unread(emp_code)

    # PUBLIC_INTERFACE
    async def get_unread_by_category(self, emp_code: str) -> Dict[str, int]:
        """Unread counts keyed by whatever categories the recipient has."""
        return await self.repo.count_unread_by_category(emp_code)

    # PUBLIC_INTERFACE
    async def get_count_by_category(self, emp_code: str) -> NotificationCountDto:
        counts = await self.get_unread_by_category(emp_code)
        return NotificationCountDto(
            total_unread=sum(counts.values()),
            pe_movement=counts.get(NotificationCategory.PE_MOVEMENT.value, 0),
            pe_additional=counts.get(NotificationCategory.PE_ADDITIONAL.value, 0),
            budget_approval=counts.get(NotificationCategory.BUDGET_APPROVAL.value, 0),
            system=counts.get(NotificationCategory.SYSTEM.value, 0),
        )

    # PUBLIC_INTERFACE
    async def get_notifications(self, emp_code: str, filters: NotificationFilterDto) -> NotificationListResponse:
        """
        Page through a recipient's active notifications, newest first.

        unread_count is within the filter; count_by_category covers every unread row.
        """
        category = filters.category if filters.category and filters.category != "ALL" else None
        rows, total, unread = await self.repo.list_for_recipient(
            emp_code,
            category=category,
            is_read=filters.is_read,
            limit=filters.page_size,
            offset=(filters.page - 1) * filters.page_size,
        )
        now = datetime.now(tz=timezone.utc)
        names = await self._sender_names(rows)
        return NotificationListResponse(
            items=[self._to_dto(n, names, now) for n in rows],
            total_count=total,
            unread_count=unread,
            count_by_category=await self.repo.count_unread_by_category(emp_code),
        )

    # PUBLIC_INTERFACE
    async def get_notification_by_id(self, notification_id: int) -> Optional[NotificationDto]:
        row = await self.repo.get(notification_id)
        if row is None:
            return None
        return self._to_dto(row, await self._sender_names([row]))

    # PUBLIC_INTERFACE
    async def mark_as_read(self, notification_id: int, emp_code: str) -> bool:
        """False when the notification does not exist or belongs to someone else."""
        row = await self.repo.get_for_recipient(notification_id, emp_code)
        if row is None:
            return False
        if not row.is_read:
            row.is_read = True
            row.read_date = utcnow()
            await self.repo.commit()
        return True

    # PUBLIC_INTERFACE
    async def mark_all_as_read(self, emp_code: str) -> int:
        count = await self.repo.mark_all_read(emp_code, utcnow())
        logger.info("Marked %d notifications read for %s", count, emp_code)
        return count

    # PUBLIC_INTERFACE
    async def create_movement_notification(self, request: CreateMovementNotificationRequest) -> int:
        """Persist a notification for a movement and return its id."""
        row = PeNotification(
            movement_id=request.movement_id,
            notification_type=request.notification_type,
            notification_category=request.notification_category,
            sender_emp_code=request.sender_emp_code,
            sender_cost_center=request.sender_cost_center,
            recipient_emp_code=request.recipient_emp_code,
            recipient_cost_center=request.recipient_cost_center,
            title=request.title,
            message=request.message,
            hc=request.hc,
            base_wage=request.base_wage,
            pe_month=request.pe_month,
            pe_year=request.pe_year,
            company_id=request.company_id,
            has_attachment=request.has_attachment,
            upload_log_id=request.upload_log_id,
            action_url=MOVEMENT_PAGE_URL.format(movement_id=request.movement_id) + "&highlight=true",
            is_read=False,
            is_active=True,
            email_sent=False,
            created_date=utcnow(),
            created_by=request.sender_emp_code,
        )
        await self.repo.insert(row)
        logger.info(
            "Notification %s (%s) created for %s on movement %s",
            row.notification_id, row.notification_type, row.recipient_emp_code, row.movement_id,
        )
        return row.notification_id

    # PUBLIC_INTERFACE
    async def create_approval_result_notification(
        self, movement_id: int, is_approved: bool, reason: Optional[str] = None
    ) -> int:
        """Tell the requester of a movement that it was approved or rejected."""
        movement = await self.movements.get(movement_id)
        if movement is None:
            raise NotFoundError(f"Movement {movement_id} not found")

        if is_approved:
            ntype = NotificationType.MOVE_APPROVED
            title = "Move In Request Approved"
            message = "Your move request has been approved."
        else:
            ntype = NotificationType.MOVE_REJECTED
            title = "Move In Request Rejected"
            message = f"Your move request has been rejected. Reason: {reason}"

        sender = movement.approved_by or SYSTEM_SENDER
        row = PeNotification(
            movement_id=movement.id,
            notification_type=ntype.value,
            notification_category=NotificationCategory.PE_MOVEMENT.value,
            sender_emp_code=sender,
            sender_cost_center=movement.move_in_cost_center_code,
            recipient_emp_code=movement.updated_by or "",
            recipient_cost_center=movement.move_out_cost_center_code,
            title=title,
            message=message,
            hc=movement.move_out_hc if movement.move_out_hc is not None else movement.move_in_hc,
            base_wage=movement.move_out_base_wage if movement.move_out_base_wage is not None else movement.move_in_base_wage,
            pe_month=_parse_int(movement.move_out_month, movement.move_in_month),
            pe_year=_parse_int(movement.move_out_year, movement.move_in_year),
            company_id=movement.company_id,
            action_url=MOVEMENT_PAGE_URL.format(movement_id=movement.id),
            is_read=False,
            is_active=True,
            email_sent=False,
            created_date=utcnow(),
            created_by=sender,
        )
        await self.repo.insert(row)
        logger.info("Approval result (%s) sent to %s for movement %s", ntype.value, row.recipient_emp_code, movement.id)
        return row.notification_id
