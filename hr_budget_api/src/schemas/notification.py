from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from src.schemas.common import CamelModel


class NotificationType(str, Enum):
    MOVE_IN_REQUEST = "MOVE_IN_REQUEST"
    MOVE_APPROVED = "MOVE_APPROVED"
    MOVE_REJECTED = "MOVE_REJECTED"
    ADDITIONAL_REQUEST = "ADDITIONAL_REQUEST"
    ADDITIONAL_APPROVED = "ADDITIONAL_APPROVED"
    ADDITIONAL_REJECTED = "ADDITIONAL_REJECTED"


class NotificationCategory(str, Enum):
    PE_MOVEMENT = "PE_MOVEMENT"
    PE_ADDITIONAL = "PE_ADDITIONAL"
    BUDGET_APPROVAL = "BUDGET_APPROVAL"
    SYSTEM = "SYSTEM"


class NotificationDto(CamelModel):
    """Notification as shown in the bell dropdown."""
    notification_id: int = Field(...)
    movement_id: Optional[int] = Field(None)
    notification_type: str = Field(...)
    notification_category: str = Field(...)
    sender_emp_code: str = Field(...)
    sender_name: Optional[str] = Field(None)
    sender_cost_center: Optional[str] = Field(None)
    recipient_emp_code: str = Field(...)
    recipient_cost_center: Optional[str] = Field(None)
    title: str = Field(...)
    message: Optional[str] = Field(None)
    hc: Optional[int] = Field(None)
    base_wage: Optional[Decimal] = Field(None)
    pe_month: Optional[int] = Field(None)
    pe_year: Optional[int] = Field(None)
    company_id: Optional[int] = Field(None)
    company_name: Optional[str] = Field(None)
    action_url: Optional[str] = Field(None)
    is_read: bool = Field(False)
    has_attachment: bool = Field(False)
    upload_log_id: Optional[int] = Field(None)
    email_sent: bool = Field(False)
    created_date: datetime = Field(...)
    time_ago: str = Field("")


class NotificationFilterDto(CamelModel):
    """List filter; category 'ALL' or empty means every category."""
    category: Optional[str] = Field(None)
    is_read: Optional[bool] = Field(None)
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=200)


class NotificationListResponse(CamelModel):
    success: bool = Field(True)
    items: List[NotificationDto] = Field(default_factory=list)
    total_count: int = Field(0)
    unread_count: int = Field(0)
    count_by_category: Dict[str, int] = Field(default_factory=dict)


class NotificationCountDto(CamelModel):
    total_unread: int = Field(0)
    pe_movement: int = Field(0)
    pe_additional: int = Field(0)
    budget_approval: int = Field(0)
    system: int = Field(0)


class UnreadCountResponse(CamelModel):
    success: bool = Field(True)
    unread_count: int = Field(0)


class MarkAllReadResponse(CamelModel):
    success: bool = Field(True)
    message: str = Field(...)
    count: int = Field(0)


class CreateMovementNotificationRequest(CamelModel):
    """
    Everything needed to notify a recipient about a movement.

    Id, created date and read state are assigned by the server.
    """
    movement_id: int = Field(...)
    notification_type: str = Field(...)
    notification_category: str = Field(...)
    sender_emp_code: str = Field(..., min_length=1, max_length=100)
    sender_cost_center: Optional[str] = Field(None, max_length=50)
    recipient_emp_code: str = Field(..., min_length=1, max_length=100)
    recipient_cost_center: Optional[str] = Field(None, max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    message: Optional[str] = Field(None, max_length=1000)
    hc: Optional[int] = Field(None)
    base_wage: Optional[Decimal] = Field(None)
    pe_month: Optional[int] = Field(None)
    pe_year: Optional[int] = Field(None)
    company_id: Optional[int] = Field(None)
    has_attachment: bool = Field(False)
    upload_log_id: Optional[int] = Field(None)
    send_email: bool = Field(True)


class CreatedNotificationResponse(CamelModel):
    success: bool = Field(True)
    notification_id: int = Field(...)


class CategoryCountResponse(CamelModel):
    """Unread counts keyed by category, plus the fixed-shape summary."""
    success: bool = Field(True)
    counts: Dict[str, int] = Field(default_factory=dict)
    summary: NotificationCountDto = Field(default_factory=NotificationCountDto)


class NotificationDetailResponse(CamelModel):
    success: bool = Field(True)
    data: NotificationDto = Field(...)
