from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, utcnow


class PeNotification(Base):
    """In-app notification about a PE movement (HRB_PE_NOTIFICATION)."""
    __tablename__ = "HRB_PE_NOTIFICATION"
    __table_args__ = (
        Index("IX_HRB_PE_NOTIFICATION_RECIPIENT", "RECIPIENT_EMP_CODE", "IS_READ", "IS_ACTIVE"),
    )

    notification_id: Mapped[int] = mapped_column("NOTIFICATION_ID", Integer, primary_key=True, autoincrement=True)
    movement_id: Mapped[Optional[int]] = mapped_column("MOVEMENT_ID", Integer, nullable=True)
    notification_type: Mapped[str] = mapped_column("NOTIFICATION_TYPE", String(50), nullable=False)
    notification_category: Mapped[str] = mapped_column("NOTIFICATION_CATEGORY", String(50), nullable=False)

    recipient_emp_code: Mapped[str] = mapped_column("RECIPIENT_EMP_CODE", String(100), nullable=False)
    recipient_cost_center: Mapped[Optional[str]] = mapped_column("RECIPIENT_COST_CENTER", String(50), nullable=True)
    sender_emp_code: Mapped[str] = mapped_column("SENDER_EMP_CODE", String(100), nullable=False)
    sender_cost_center: Mapped[Optional[str]] = mapped_column("SENDER_COST_CENTER", String(50), nullable=True)

    title: Mapped[str] = mapped_column("TITLE", String(200), nullable=False)
    message: Mapped[Optional[str]] = mapped_column("MESSAGE", String(1000), nullable=True)

    hc: Mapped[Optional[int]] = mapped_column("HC", Integer, nullable=True)
    base_wage: Mapped[Optional[Decimal]] = mapped_column("BASE_WAGE", Numeric(18, 2), nullable=True)
    pe_month: Mapped[Optional[int]] = mapped_column("PE_MONTH", Integer, nullable=True)
    pe_year: Mapped[Optional[int]] = mapped_column("PE_YEAR", Integer, nullable=True)
    company_id: Mapped[Optional[int]] = mapped_column("COMPANY_ID", Integer, nullable=True)

    action_url: Mapped[Optional[str]] = mapped_column("ACTION_URL", String(500), nullable=True)
    action_data: Mapped[Optional[str]] = mapped_column("ACTION_DATA", Text, nullable=True)

    email_log_id: Mapped[Optional[int]] = mapped_column("EMAIL_LOG_ID", Integer, nullable=True)
    email_sent: Mapped[bool] = mapped_column("EMAIL_SENT", Boolean, nullable=False, default=False)
    email_sent_date: Mapped[Optional[datetime]] = mapped_column("EMAIL_SENT_DATE", DateTime(timezone=True), nullable=True)

    has_attachment: Mapped[bool] = mapped_column("HAS_ATTACHMENT", Boolean, nullable=False, default=False)
    upload_log_id: Mapped[Optional[int]] = mapped_column("UPLOAD_LOG_ID", Integer, nullable=True)

    is_read: Mapped[bool] = mapped_column("IS_READ", Boolean, nullable=False, default=False)
    read_date: Mapped[Optional[datetime]] = mapped_column("READ_DATE", DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column("IS_ACTIVE", Boolean, nullable=False, default=True)

    created_date: Mapped[datetime] = mapped_column("CREATED_DATE", DateTime(timezone=True), nullable=False, default=utcnow)
    created_by: Mapped[Optional[str]] = mapped_column("CREATED_BY", String(100), nullable=True)
