from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from src.schemas.common import ApiResult, CamelModel


class ApproveRequest(CamelModel):
    movement_id: Optional[int] = Field(None, description="Ignored when it disagrees with the path id")
    remark: Optional[str] = Field(None, max_length=500)


class RejectRequest(CamelModel):
    movement_id: Optional[int] = Field(None, description="Ignored when it disagrees with the path id")
    reason: Optional[str] = Field(None, max_length=1000)


class MovementResponse(ApiResult):
    movement_id: Optional[str] = Field(None)


class MovementCreate(CamelModel):
    """Submit a headcount/base-wage transfer that waits for approval."""
    company_id: Optional[int] = Field(None)
    move_out_cost_center_code: str = Field(..., max_length=20)
    move_in_cost_center_code: str = Field(..., max_length=20)
    pe_month: int = Field(..., ge=1, le=12)
    pe_year: int = Field(..., ge=2000, le=2100)
    hc: int = Field(0, ge=0)
    base_wage: Decimal = Field(Decimal("0"), ge=0)
    pending_emp_code: Optional[str] = Field(None, max_length=100, description="Approver of the receiving cost center")


class MovementRead(CamelModel):
    id: int
    company_id: Optional[int] = None
    move_in_cost_center_code: Optional[str] = None
    move_out_cost_center_code: Optional[str] = None
    move_in_month: Optional[str] = None
    move_in_year: Optional[str] = None
    move_out_month: Optional[str] = None
    move_out_year: Optional[str] = None
    move_in_hc: Optional[int] = None
    move_out_hc: Optional[int] = None
    move_in_base_wage: Optional[Decimal] = None
    move_out_base_wage: Optional[Decimal] = None
    status: Optional[str] = None
    approval_status: Optional[str] = None
    pending_emp_code: Optional[str] = None
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    updated_by: Optional[str] = None
    updated_date: Optional[datetime] = None
