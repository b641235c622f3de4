from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base for DTOs exchanged with the budget screens.

    Serialised with camelCase keys; accepts camelCase or snake_case input and
    can be validated straight from ORM rows.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResult(CamelModel):
    """Success flag plus message returned by command endpoints."""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: Optional[str] = Field(default=None, description="Human readable outcome")


class PagedResult(CamelModel, Generic[T]):
    """A page of rows with paging metadata."""
    data: List[T] = Field(default_factory=list)
    total_count: int = Field(0, ge=0)
    page: int = Field(1, ge=1)
    page_size: int = Field(0, ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @computed_field  # type: ignore[misc]
    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @computed_field  # type: ignore[misc]
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class TenantEcho(BaseModel):
    """Model to echo tenant context."""
    tenant_id: Optional[UUID] = Field(None, description="Tenant ID from the X-Tenant-ID header (null = host)")


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(..., description="Machine-readable error type code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Optional error details (e.g., validation issues)")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Standardized API error envelope returned by exception handlers."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    tenant_id: Optional[str] = Field(default=None, description="Tenant ID (if available)")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
