from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, utcnow

APPROVAL_PENDING = "PENDING"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"


class PeMovement(Base):
    """
    Headcount/base-wage transfer between two cost centers (HRB_PE_MOVEMENT).

    Month and year columns are stored as strings, as submitted by the budget screens.
    """
    __tablename__ = "HRB_PE_MOVEMENT"

    id: Mapped[int] = mapped_column("ID", Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[Optional[int]] = mapped_column("COMPANY_ID", Integer, nullable=True)

    move_in_cost_center_code: Mapped[Optional[str]] = mapped_column("MOVE_IN_COST_CENTER_CODE", String(20), nullable=True)
    move_in_month: Mapped[Optional[str]] = mapped_column("MOVE_IN_MONTH", String(10), nullable=True)
    move_in_year: Mapped[Optional[str]] = mapped_column("MOVE_IN_YEAR", String(10), nullable=True)
    move_in_hc: Mapped[Optional[int]] = mapped_column("MOVE_IN_HC", Integer, nullable=True)
    move_in_base_wage: Mapped[Optional[Decimal]] = mapped_column("MOVE_IN_BASE_WAGE", Numeric(18, 2), nullable=True)

    move_out_cost_center_code: Mapped[Optional[str]] = mapped_column("MOVE_OUT_COST_CENTER_CODE", String(20), nullable=True)
    move_out_month: Mapped[Optional[str]] = mapped_column("MOVE_OUT_MONTH", String(10), nullable=True)
    move_out_year: Mapped[Optional[str]] = mapped_column("MOVE_OUT_YEAR", String(10), nullable=True)
    move_out_hc: Mapped[Optional[int]] = mapped_column("MOVE_OUT_HC", Integer, nullable=True)
    move_out_base_wage: Mapped[Optional[Decimal]] = mapped_column("MOVE_OUT_BASE_WAGE", Numeric(18, 2), nullable=True)

    status: Mapped[Optional[str]] = mapped_column("STATUS", String(20), nullable=True)
    requires_approval: Mapped[bool] = mapped_column("REQUIRES_APPROVAL", Boolean, nullable=False, default=True)
    approval_status: Mapped[Optional[str]] = mapped_column("APPROVAL_STATUS", String(20), nullable=True, default=APPROVAL_PENDING)
    pending_cost_center: Mapped[Optional[str]] = mapped_column("PENDING_COST_CENTER", String(20), nullable=True)
    pending_emp_code: Mapped[Optional[str]] = mapped_column("PENDING_EMP_CODE", String(100), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column("APPROVED_BY", String(100), nullable=True)
    approved_date: Mapped[Optional[datetime]] = mapped_column("APPROVED_DATE", DateTime(timezone=True), nullable=True)
    rejected_reason: Mapped[Optional[str]] = mapped_column("REJECTED_REASON", Text, nullable=True)
    upload_log_id: Mapped[Optional[int]] = mapped_column("UPLOAD_LOG_ID", Integer, nullable=True)

    updated_by: Mapped[Optional[str]] = mapped_column("UPDATED_BY", String(100), nullable=True)
    updated_date: Mapped[Optional[datetime]] = mapped_column("UPDATED_DATE", DateTime(timezone=True), nullable=True, default=utcnow)
