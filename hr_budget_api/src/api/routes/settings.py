from __future__ import annotations

import io
from datetime import date, datetime
from typing import List, Optional, Sequence

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_admin_or_super_user
from src.db.models.security import User
from src.schemas.audit import (
    ActivityActions,
    ActivityLogDto,
    ActivityLogQuery,
    ActivityModules,
    UploadLogDto,
    UploadLogQuery,
)
from src.schemas.budget_config import (
    BuSupCreate,
    BuSupRead,
    BuSupUpdate,
    MaxAllocateIdResponse,
    PeAllocationBatchRequest,
    PeAllocationBatchResponse,
    PeAllocationRead,
)
from src.schemas.common import ApiResult, CamelModel, PagedResult
from src.services.audit import AuditLogService
from src.services.budget_config import BudgetConfigService

router = APIRouter(prefix="/Settings", tags=["Settings"], dependencies=[Depends(require_admin_or_super_user)])

BU_SUP_TARGET = "HRB_CONF_BU_SUP"
PE_ALLOCATION_TARGET = "HRB_CONF_PE_ALLOCATION"


# BU / SUP configuration

# PUBLIC_INTERFACE
@router.get("/BuSup", response_model=List[BuSupRead], summary="List BU/SUP configuration")
async def list_bu_sup(
    company_id: Optional[int] = Query(None, alias="companyId"),
    active_only: bool = Query(False, alias="activeOnly"),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[BuSupRead]:
    rows = await BudgetConfigService(session).list_bu_sup(company_id=company_id, active_only=active_only)
    return [BuSupRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get("/BuSup/{bu_id}", response_model=BuSupRead, summary="Get BU/SUP configuration")
async def get_bu_sup(
    bu_id: int = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> BuSupRead:
    return BuSupRead.model_validate(await BudgetConfigService(session).get_bu_sup(bu_id))


# PUBLIC_INTERFACE
@router.post(
    "/BuSup",
    response_model=BuSupRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create BU/SUP configuration",
)
async def create_bu_sup(
    request: Request,
    payload: BuSupCreate,
    user: User = Depends(require_admin_or_super_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> BuSupRead:
    row = await BudgetConfigService(session).create_bu_sup(payload, user.display_code)
    created = BuSupRead.model_validate(row)
    await AuditLogService(session).log(
        request, ActivityModules.SETTINGS, ActivityActions.CREATE,
        target_id=str(row.bu_id), target_type=BU_SUP_TARGET, new_value=created,
    )
    return created


# PUBLIC_INTERFACE
@router.put("/BuSup/{bu_id}", response_model=BuSupRead, summary="Update BU/SUP configuration")
async def update_bu_sup(
    request: Request,
    payload: BuSupUpdate,
    bu_id: int = Path(...),
    user: User = Depends(require_admin_or_super_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> BuSupRead:
    before, row = await BudgetConfigService(session).update_bu_sup(bu_id, payload, user.display_code)
    updated = BuSupRead.model_validate(row)
    await AuditLogService(session).log(
        request, ActivityModules.SETTINGS, ActivityActions.UPDATE,
        target_id=str(bu_id), target_type=BU_SUP_TARGET, old_value=before, new_value=updated,
    )
    return updated


# PUBLIC_INTERFACE
@router.post("/BuSup/{bu_id}/toggle", response_model=BuSupRead, summary="Toggle BU/SUP active flag")
async def toggle_bu_sup(
    request: Request,
    bu_id: int = Path(...),
    user: User = Depends(require_admin_or_super_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> BuSupRead:
    row = await BudgetConfigService(session).toggle_bu_sup(bu_id, user.display_code)
    await AuditLogService(session).log(
        request, ActivityModules.SETTINGS, ActivityActions.UPDATE,
        target_id=str(bu_id), target_type=BU_SUP_TARGET, new_value={"isActive": row.is_active},
    )
    return BuSupRead.model_validate(row)


# PE allocation

# PUBLIC_INTERFACE
@router.get("/PEAllocation", response_model=List[PeAllocationRead], summary="List active PE allocations")
async def list_allocations(
    allocate_id: Optional[int] = Query(None, alias="allocateId"),
    company_id: Optional[int] = Query(None, alias="companyId"),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[PeAllocationRead]:
    rows = await BudgetConfigService(session).list_allocations(allocate_id=allocate_id, company_id=company_id)
    return [PeAllocationRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get(
    "/GetMaxAllocateId",
    response_model=MaxAllocateIdResponse,
    summary="Current and next allocation id",
)
async def get_max_allocate_id(session: AsyncSession = Depends(get_tenant_session)) -> MaxAllocateIdResponse:
    max_id = await BudgetConfigService(session).get_max_allocate_id()
    return MaxAllocateIdResponse(max_id=max_id, next_id=max_id + 1)


# PUBLIC_INTERFACE
@router.post(
    "/savePEallocationbatch",
    response_model=PeAllocationBatchResponse,
    summary="Save a batch of PE allocations",
    description="Insert or update allocations by (allocateId, companyId, costCenterCode) in one transaction.",
)
async def save_allocation_batch(
    request: Request,
    payload: PeAllocationBatchRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> PeAllocationBatchResponse:
    saved = await BudgetConfigService(session).save_allocation_batch(payload.allocations, payload.created_by)
    await AuditLogService(session).log(
        request, ActivityModules.SETTINGS, ActivityActions.UPDATE,
        target_id=str(payload.allocations[0].allocate_id), target_type=PE_ALLOCATION_TARGET,
        new_value={"savedCount": saved, "createdBy": payload.created_by},
    )
    return PeAllocationBatchResponse(
        success=True,
        message=f"Successfully saved {saved} PE Allocation configuration records",
        saved_count=saved,
    )


# PUBLIC_INTERFACE
@router.delete(
    "/PEAllocation/{allocate_id}/{company_id}/{cost_center_code}",
    response_model=ApiResult,
    summary="Delete a PE allocation",
)
async def delete_allocation(
    request: Request,
    allocate_id: int = Path(...),
    company_id: int = Path(...),
    cost_center_code: str = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> ApiResult:
    await BudgetConfigService(session).delete_allocation(allocate_id, company_id, cost_center_code)
    await AuditLogService(session).log(
        request, ActivityModules.SETTINGS, ActivityActions.DELETE,
        target_id=f"{allocate_id}/{company_id}/{cost_center_code}", target_type=PE_ALLOCATION_TARGET,
    )
    return ApiResult(success=True, message="Allocation deleted")


# Audit logs

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
EXPORT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

ACTIVITY_EXPORT_COLUMNS = {
    "timestamp": "Timestamp",
    "user_id": "User ID",
    "username": "Username",
    "user_role": "Role",
    "module_name": "Module",
    "action": "Action",
    "target_id": "Target ID",
    "target_type": "Target Type",
    "status": "Status",
    "ip_address": "IP Address",
    "request_url": "Request URL",
    "error_message": "Error Message",
}

UPLOAD_EXPORT_COLUMNS = {
    "uploaded_date": "Uploaded Date",
    "file_name": "File Name",
    "file_size": "File Size",
    "file_type": "File Type",
    "uploaded_by": "Uploaded By",
    "ref_type": "Reference Type",
    "ref_id": "Reference ID",
}


def activity_query(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    module_name: Optional[str] = Query(None, alias="moduleName"),
    action: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search_text: Optional[str] = Query(None, alias="searchText"),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_order: str = Query("desc", alias="sortOrder"),
) -> ActivityLogQuery:
    return ActivityLogQuery(
        date_from=date_from,
        date_to=date_to,
        module_name=module_name,
        action=action,
        user_id=user_id,
        status=status_filter,
        search_text=search_text,
        sort_field=sort_field,
        sort_order=sort_order,
    )


def upload_query(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    username: Optional[str] = Query(None),
    search_text: Optional[str] = Query(None, alias="searchText"),
    sort_field: Optional[str] = Query(None, alias="sortField"),
    sort_order: str = Query("desc", alias="sortOrder"),
) -> UploadLogQuery:
    return UploadLogQuery(
        date_from=date_from,
        date_to=date_to,
        username=username,
        search_text=search_text,
        sort_field=sort_field,
        sort_order=sort_order,
    )


def _frame(rows: Sequence[CamelModel], columns: dict) -> pd.DataFrame:
    """Rows as a DataFrame with display headers; datetimes rendered as text."""
    records = []
    for row in rows:
        record = {}
        for field, header in columns.items():
            value = getattr(row, field)
            record[header] = value.strftime(EXPORT_DATETIME_FORMAT) if isinstance(value, datetime) else value
        records.append(record)
    return pd.DataFrame(records, columns=list(columns.values()))


def _export_dataframe(df: pd.DataFrame, sheet_name: str, export_format: str) -> StreamingResponse:
    """
    Convert a DataFrame to CSV or XLSX and stream it as an attachment.

    The file is named after the sheet and today's date, e.g. Activity_Log_2024-01-31.xlsx.
    """
    export_format = (export_format or "xlsx").lower()
    if export_format not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported export format '{export_format}'")

    filename = f"{sheet_name.replace(' ', '_')}_{date.today().isoformat()}.{export_format}"
    if export_format == "csv":
        buffer = io.BytesIO(df.to_csv(index=False).encode("utf-8"))
    else:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=sheet_name)
        buffer.seek(0)
    return StreamingResponse(
        buffer,
        media_type=EXPORT_MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# PUBLIC_INTERFACE
@router.get(
    "/AuditLogs/Activity",
    response_model=PagedResult[ActivityLogDto],
    summary="Activity log",
    description="Every matching activity row; 'ALL' disables the module, action and status filters.",
)
async def get_activity_logs(
    query: ActivityLogQuery = Depends(activity_query),
    session: AsyncSession = Depends(get_tenant_session),
) -> PagedResult[ActivityLogDto]:
    return await AuditLogService(session).get_activity_logs(query)


# PUBLIC_INTERFACE
@router.get(
    "/AuditLogs/Activity/Export",
    summary="Export activity log",
    description="Same filters as the activity log, streamed as xlsx (default) or csv.",
    response_description="File stream (XLSX/CSV)",
    response_class=StreamingResponse,
)
async def export_activity_logs(
    request: Request,
    export_format: str = Query("xlsx", alias="format"),
    query: ActivityLogQuery = Depends(activity_query),
    session: AsyncSession = Depends(get_tenant_session),
) -> StreamingResponse:
    audit = AuditLogService(session)
    result = await audit.get_activity_logs(query)
    response = _export_dataframe(_frame(result.data, ACTIVITY_EXPORT_COLUMNS), "Activity Log", export_format)
    await audit.log(
        request, ActivityModules.AUDIT_LOGS, ActivityActions.EXPORT,
        target_type="ActivityLog", new_value={"rows": result.total_count, "format": export_format},
    )
    return response


# PUBLIC_INTERFACE
@router.get("/AuditLogs/Upload", response_model=PagedResult[UploadLogDto], summary="Upload log")
async def get_upload_logs(
    query: UploadLogQuery = Depends(upload_query),
    session: AsyncSession = Depends(get_tenant_session),
) -> PagedResult[UploadLogDto]:
    return await AuditLogService(session).get_upload_logs(query)


# PUBLIC_INTERFACE
@router.get(
    "/AuditLogs/Upload/Export",
    summary="Export upload log",
    response_description="File stream (XLSX/CSV)",
    response_class=StreamingResponse,
)
async def export_upload_logs(
    request: Request,
    export_format: str = Query("xlsx", alias="format"),
    query: UploadLogQuery = Depends(upload_query),
    session: AsyncSession = Depends(get_tenant_session),
) -> StreamingResponse:
    audit = AuditLogService(session)
    result = await audit.get_upload_logs(query)
    response = _export_dataframe(_frame(result.data, UPLOAD_EXPORT_COLUMNS), "Upload Log", export_format)
    await audit.log(
        request, ActivityModules.AUDIT_LOGS, ActivityActions.EXPORT,
        target_type="UploadLog", new_value={"rows": result.total_count, "format": export_format},
    )
    return response


# PUBLIC_INTERFACE
@router.get("/AuditLogs/Modules", response_model=List[str], summary="Distinct activity modules")
async def get_modules(session: AsyncSession = Depends(get_tenant_session)) -> List[str]:
    return await AuditLogService(session).get_distinct_modules()


# PUBLIC_INTERFACE
@router.get("/AuditLogs/Actions", response_model=List[str], summary="Distinct activity actions")
async def get_actions(session: AsyncSession = Depends(get_tenant_session)) -> List[str]:
    return await AuditLogService(session).get_distinct_actions()
