from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Path, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_active_user, get_tenant_session
from src.core.exceptions import BusinessRuleError, NotFoundError
from src.db.models.security import User
from src.schemas.audit import ActivityActions, ActivityModules, FileUploadResult, UploadLogDto
from src.schemas.common import ApiResult
from src.schemas.movement import ApproveRequest, MovementCreate, MovementRead, MovementResponse, RejectRequest
from src.services.audit import AuditLogService
from src.services.file_upload import FileUploadService, UploadInput
from src.services.movement import MovementService
from src.services.notification import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/PEManagement", tags=["PE Management"])

MOVEMENT_TARGET = "Movement"
DEFAULT_REF_TYPE = "PE_MOVEMENT"


def _failure(exc: Exception, movement_id: int) -> JSONResponse:
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFoundError) else status.HTTP_400_BAD_REQUEST
    body = MovementResponse(success=False, message=str(exc), movement_id=str(movement_id))
    return JSONResponse(status_code=code, content=body.model_dump(by_alias=True))


def _content_disposition(file_name: str, upload_id: int, seq: int) -> str:
    """Attachment header with an ASCII fallback plus the RFC 5987 UTF-8 name."""
    quoted = quote(file_name)
    if quoted == file_name:
        return f'attachment; filename="{file_name}"'
    fallback = file_name.encode("ascii", "ignore").decode().replace('"', "").replace("\\", "").strip()
    if not fallback or fallback.startswith("."):
        fallback = f"file_{upload_id}_{seq}{fallback}"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


# PUBLIC_INTERFACE
@router.post(
    "/Movement",
    response_model=MovementRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a movement",
    description="Create a movement waiting for approval; the named approver receives a MOVE_IN_REQUEST notification.",
)
async def create_movement(
    request: Request,
    payload: MovementCreate,
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> MovementRead:
    movement = await MovementService(session).create(payload, user.display_code)
    await AuditLogService(session).log(
        request, ActivityModules.PE_MANAGEMENT, ActivityActions.MOVE_IN,
        target_id=str(movement.id), target_type=MOVEMENT_TARGET, new_value=payload,
    )
    return MovementRead.model_validate(movement)


# PUBLIC_INTERFACE
@router.get(
    "/Pending",
    response_model=List[MovementRead],
    summary="Movements waiting for my approval",
)
async def get_pending_movements(
    company_id: Optional[int] = Query(None, alias="companyId"),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[MovementRead]:
    rows = await MovementService(session).list_pending(emp_code=user.display_code, company_id=company_id)
    return [MovementRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/Movement/Approve/{movement_id}",
    response_model=MovementResponse,
    summary="Approve a movement",
    description="Approve a pending movement and notify its requester. 404 when missing, 400 when no longer pending.",
)
async def approve_movement(
    request: Request,
    movement_id: int = Path(...),
    payload: Optional[ApproveRequest] = None,
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
):
    emp_code = user.display_code
    remark = payload.remark if payload else None
    audit = AuditLogService(session)
    new_value = {"MovementId": movement_id, "ApprovedBy": emp_code, "Remark": remark}
    try:
        await MovementService(session).approve(movement_id, emp_code, remark)
    except (NotFoundError, BusinessRuleError) as exc:
        await audit.log(
            request, ActivityModules.PE_MANAGEMENT, ActivityActions.APPROVE,
            target_id=str(movement_id), target_type=MOVEMENT_TARGET, new_value=new_value,
            status="FAILED", error_message=str(exc),
        )
        return _failure(exc, movement_id)

    await audit.log(
        request, ActivityModules.PE_MANAGEMENT, ActivityActions.APPROVE,
        target_id=str(movement_id), target_type=MOVEMENT_TARGET, new_value=new_value,
    )
    await NotificationService(session).create_approval_result_notification(movement_id, True)
    return MovementResponse(success=True, message="Movement approved successfully", movement_id=str(movement_id))


# PUBLIC_INTERFACE
@router.post(
    "/Movement/Reject/{movement_id}",
    response_model=MovementResponse,
    summary="Reject a movement",
    description="Reject a pending movement with a reason and notify its requester.",
)
async def reject_movement(
    request: Request,
    payload: RejectRequest,
    movement_id: int = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
):
    emp_code = user.display_code
    audit = AuditLogService(session)
    new_value = {"MovementId": movement_id, "RejectedBy": emp_code, "Reason": payload.reason}
    try:
        await MovementService(session).reject(movement_id, emp_code, payload.reason)
    except (NotFoundError, BusinessRuleError) as exc:
        await audit.log(
            request, ActivityModules.PE_MANAGEMENT, ActivityActions.REJECT,
            target_id=str(movement_id), target_type=MOVEMENT_TARGET, new_value=new_value,
            status="FAILED", error_message=str(exc),
        )
        return _failure(exc, movement_id)

    await audit.log(
        request, ActivityModules.PE_MANAGEMENT, ActivityActions.REJECT,
        target_id=str(movement_id), target_type=MOVEMENT_TARGET, new_value=new_value,
    )
    await NotificationService(session).create_approval_result_notification(movement_id, False, payload.reason)
    return MovementResponse(success=True, message="Movement rejected successfully", movement_id=str(movement_id))


# PUBLIC_INTERFACE
@router.post(
    "/UploadFile",
    response_model=List[FileUploadResult],
    summary="Upload attachments",
    description="Attach one or more files to a reference (default PE_MOVEMENT). Each file is validated independently.",
)
async def upload_files(
    files: List[UploadFile] = File(...),
    ref_type: str = Form(DEFAULT_REF_TYPE, alias="refType"),
    ref_id: Optional[int] = Form(None, alias="refId"),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
):
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    svc = FileUploadService(session)
    results: List[FileUploadResult] = []
    for upload in files:
        results.append(await svc.upload_file(UploadInput(
            file_name=upload.filename or "upload",
            content_type=upload.content_type,
            data=await upload.read(),
            ref_type=ref_type,
            ref_id=ref_id,
            uploaded_by=user.display_code,
        )))
    if not any(r.success for r in results):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=[r.model_dump(by_alias=True) for r in results],
        )
    return results


# PUBLIC_INTERFACE
@router.get(
    "/Files/{ref_type}/{ref_id}",
    response_model=List[UploadLogDto],
    summary="List attachments of a reference",
)
async def list_files(
    ref_type: str = Path(...),
    ref_id: int = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[UploadLogDto]:
    return await FileUploadService(session).get_files_by_reference(ref_type, ref_id)


# PUBLIC_INTERFACE
@router.get(
    "/DownloadFile/{upload_id}/{seq}",
    summary="Download an attachment",
    response_class=Response,
)
async def download_file(
    upload_id: int = Path(...),
    seq: int = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> Response:
    file = await FileUploadService(session).get_file(upload_id, seq)
    if file is None:
        raise HTTPException(status_code=404, detail="File not found")
    return Response(
        content=file.data,
        media_type=file.content_type,
        headers={"Content-Disposition": _content_disposition(file.file_name, upload_id, seq)},
    )


# PUBLIC_INTERFACE
@router.delete(
    "/DeleteFile/{upload_id}/{seq}",
    response_model=ApiResult,
    summary="Remove an attachment",
)
async def delete_file(
    request: Request,
    upload_id: int = Path(...),
    seq: int = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> ApiResult:
    if not await FileUploadService(session).delete_file(upload_id, seq):
        raise HTTPException(status_code=404, detail="File not found")
    await AuditLogService(session).log(
        request, ActivityModules.PE_MANAGEMENT, ActivityActions.DELETE,
        target_id=f"{upload_id}/{seq}", target_type="UploadFile",
    )
    return ApiResult(success=True, message="File deleted successfully")
