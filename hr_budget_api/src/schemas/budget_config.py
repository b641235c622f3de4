from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from src.schemas.common import ApiResult, CamelModel


class BuSupRead(CamelModel):
    bu_id: int
    company_id: Optional[int] = None
    bu_code: Optional[str] = None
    bu_name: Optional[str] = None
    cobu_code: Optional[str] = None
    is_active: Optional[bool] = None
    updated_by: Optional[str] = None
    updated_date: Optional[datetime] = None


class BuSupCreate(CamelModel):
    company_id: Optional[int] = Field(None)
    bu_code: str = Field(..., min_length=1, max_length=20)
    bu_name: Optional[str] = Field(None, max_length=100)
    cobu_code: Optional[str] = Field(None, max_length=50)
    is_active: bool = Field(True)


class BuSupUpdate(CamelModel):
    company_id: Optional[int] = Field(None)
    bu_code: Optional[str] = Field(None, min_length=1, max_length=20)
    bu_name: Optional[str] = Field(None, max_length=100)
    cobu_code: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = Field(None)


class PeAllocationItem(CamelModel):
    allocate_id: int = Field(..., ge=1)
    company_id: int = Field(...)
    cost_center_code: str = Field(..., min_length=1, max_length=20)
    emp_code: Optional[str] = Field(None, max_length=100)
    allocate_value: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    is_active: bool = Field(True)


class PeAllocationRead(PeAllocationItem):
    updated_by: Optional[str] = None
    updated_date: Optional[datetime] = None


class PeAllocationBatchRequest(CamelModel):
    allocations: List[PeAllocationItem] = Field(default_factory=list)
    created_by: Optional[str] = Field(None, max_length=50)


class PeAllocationBatchResponse(ApiResult):
    saved_count: int = Field(0)


class MaxAllocateIdResponse(CamelModel):
    success: bool = Field(True)
    max_id: int = Field(0)
    next_id: int = Field(1)
