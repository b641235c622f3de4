from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field

from src.schemas.common import CamelModel


class ActivityModules:
    """Module names written to HRB_ACTIVITY_LOG.ModuleName."""
    DASHBOARD = "Dashboard"
    HEAD_COUNT_PLANNING = "Head Count Planning"
    PE_BONUS = "PE Bonus"
    PE_HEAD_COUNT = "PE Head Count"
    PE_MANAGEMENT = "PE Management"
    USER_MANAGEMENT = "User Management"
    ROLE_MANAGEMENT = "Role Management"
    MASTER_DATA = "Master Data"
    AUDIT_LOGS = "Audit Logs"
    SETTINGS = "Settings"
    AUTHENTICATION = "Authentication"


class ActivityActions:
    """Action codes written to HRB_ACTIVITY_LOG.Action."""
    VIEW = "VIEW"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    MOVE_IN = "MOVE_IN"
    MOVE_OUT = "MOVE_OUT"
    ADDITIONAL = "ADDITIONAL"
    CUT = "CUT"
    ASSIGN_ROLE = "ASSIGN_ROLE"
    ASSIGN_PERMISSION = "ASSIGN_PERMISSION"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class ActivityEntry(CamelModel):
    """What to record; request metadata and the actor are filled in by the service."""
    module_name: str = Field(..., max_length=100)
    action: str = Field(..., max_length=30)
    target_id: Optional[str] = Field(None, max_length=100)
    target_type: Optional[str] = Field(None, max_length=50)
    old_value: Optional[Any] = Field(None)
    new_value: Optional[Any] = Field(None)
    status: str = Field("SUCCESS")
    error_message: Optional[str] = Field(None)
    duration_ms: Optional[int] = Field(None)


class ActivityLogDto(CamelModel):
    log_id: int
    timestamp: datetime
    user_id: str
    username: Optional[str] = None
    user_role: Optional[str] = None
    module_name: str
    action: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_url: Optional[str] = None
    status: str = "SUCCESS"
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None


class ActivityLogQuery(CamelModel):
    """Filters for the activity grid; 'ALL' disables module/action/status filters."""
    sort_field: Optional[str] = None
    sort_order: str = "desc"
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    module_name: Optional[str] = None
    action: Optional[str] = None
    user_id: Optional[str] = None
    status: Optional[str] = None
    search_text: Optional[str] = None


class UploadLogDto(CamelModel):
    id: int
    seq: int
    file_name: Optional[str] = None
    file_size: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_date: Optional[datetime] = None
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    file_type: Optional[str] = None
    mime_type: Optional[str] = None


class UploadLogQuery(CamelModel):
    sort_field: Optional[str] = None
    sort_order: str = "desc"
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    username: Optional[str] = None
    search_text: Optional[str] = None


class FileUploadResult(CamelModel):
    success: bool
    message: Optional[str] = None
    upload_log_id: Optional[int] = None
    seq: Optional[int] = None
    file_name: Optional[str] = None
    file_size: Optional[str] = None
