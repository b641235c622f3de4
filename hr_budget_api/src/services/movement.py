from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BusinessRuleError, NotFoundError
from src.db.base import utcnow
from src.db.models.movement import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    PeMovement,
)
from src.repositories.movement import MovementRepository
from src.schemas.movement import MovementCreate
from src.schemas.notification import (
    CreateMovementNotificationRequest,
    NotificationCategory,
    NotificationType,
)
from src.services.base import BaseService
from src.services.notification import NotificationService

logger = logging.getLogger(__name__)

STATUS_PENDING = "Pending Approval"
STATUS_APPROVED = "Approved"
STATUS_REJECTED = "Rejected"


class MovementService(BaseService):
    """Approval workflow of PE movements."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = MovementRepository(session)

    async def _get_pending(self, movement_id: int) -> PeMovement:
        movement = await self.repo.get(movement_id)
        if movement is None:
            raise NotFoundError("Movement not found")
        if movement.approval_status != APPROVAL_PENDING:
            raise BusinessRuleError("Movement is not pending approval")
        return movement

    # PUBLIC_INTERFACE
    async def create(self, payload: MovementCreate, submitted_by: str) -> PeMovement:
        """
        Record a movement waiting for approval and notify the approver when one is named.

        The transfer applies the same HC and base wage to both sides for the given month.
        """
        month, year = str(payload.pe_month), str(payload.pe_year)
        movement = PeMovement(
            company_id=payload.company_id,
            move_out_cost_center_code=payload.move_out_cost_center_code,
            move_out_month=month,
            move_out_year=year,
            move_out_hc=payload.hc,
            move_out_base_wage=payload.base_wage,
            move_in_cost_center_code=payload.move_in_cost_center_code,
            move_in_month=month,
            move_in_year=year,
            move_in_hc=payload.hc,
            move_in_base_wage=payload.base_wage,
            status=STATUS_PENDING,
            requires_approval=True,
            approval_status=APPROVAL_PENDING,
            pending_cost_center=payload.move_in_cost_center_code,
            pending_emp_code=payload.pending_emp_code,
            updated_by=submitted_by,
            updated_date=utcnow(),
        )
        await self.repo.insert(movement)
        logger.info("Movement %s submitted by %s", movement.id, submitted_by)

        if payload.pending_emp_code:
            await NotificationService(self.session).create_movement_notification(
                CreateMovementNotificationRequest(
                    movement_id=movement.id,
                    notification_type=NotificationType.MOVE_IN_REQUEST.value,
                    notification_category=NotificationCategory.PE_MOVEMENT.value,
                    sender_emp_code=submitted_by,
                    sender_cost_center=payload.move_out_cost_center_code,
                    recipient_emp_code=payload.pending_emp_code,
                    recipient_cost_center=payload.move_in_cost_center_code,
                    title="Move In Request",
                    message=(
                        f"Request to move {payload.hc} HC from {payload.move_out_cost_center_code} "
                        f"to {payload.move_in_cost_center_code}"
                    ),
                    hc=payload.hc,
                    base_wage=payload.base_wage,
                    pe_month=payload.pe_month,
                    pe_year=payload.pe_year,
                    company_id=payload.company_id,
                )
            )
        return movement

    # PUBLIC_INTERFACE
    async def list_pending(
        self, emp_code: Optional[str] = None, company_id: Optional[int] = None, limit: int = 100, offset: int = 0
    ) -> List[PeMovement]:
        return await self.repo.list_pending(emp_code=emp_code, company_id=company_id, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def approve(self, movement_id: int, approved_by: str, remark: Optional[str] = None) -> PeMovement:
        """
        Approve a pending movement.

        Raises:
            NotFoundError: the movement does not exist.
            BusinessRuleError: the movement is no longer pending.
        """
        movement = await self._get_pending(movement_id)
        now = utcnow()
        movement.approval_status = APPROVAL_APPROVED
        movement.status = STATUS_APPROVED
        movement.approved_by = approved_by
        movement.approved_date = now
        movement.updated_date = now
        await self.repo.commit()
        logger.info("Movement %s approved by %s%s", movement_id, approved_by, f" ({remark})" if remark else "")
        return movement

    # PUBLIC_INTERFACE
    async def reject(self, movement_id: int, rejected_by: str, reason: str) -> PeMovement:
        """Reject a pending movement; a non-blank reason is required."""
        movement = await self._get_pending(movement_id)
        if not reason or not reason.strip():
            raise BusinessRuleError("Rejection reason is required")
        now = utcnow()
        movement.approval_status = APPROVAL_REJECTED
        movement.status = STATUS_REJECTED
        movement.rejected_reason = reason
        movement.approved_by = rejected_by
        movement.approved_date = now
        movement.updated_date = now
        await self.repo.commit()
        logger.info("Movement %s rejected by %s", movement_id, rejected_by)
        return movement
