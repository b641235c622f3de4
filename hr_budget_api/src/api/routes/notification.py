from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_optional_user, get_tenant_session, require_admin_or_super_user
from src.db.models.security import User
from src.schemas.common import ApiResult
from src.schemas.notification import (
    CategoryCountResponse,
    CreatedNotificationResponse,
    CreateMovementNotificationRequest,
    MarkAllReadResponse,
    NotificationDetailResponse,
    NotificationFilterDto,
    NotificationListResponse,
    UnreadCountResponse,
)
from src.services.notification import NotificationService

router = APIRouter(prefix="/Notification", tags=["Notifications"])


def _emp_code(user: Optional[User]) -> Optional[str]:
    return user.display_code if user is not None else None


def _require_emp_code(user: Optional[User]) -> str:
    emp_code = _emp_code(user)
    if not emp_code:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    return emp_code


# PUBLIC_INTERFACE
@router.get(
    "/count",
    response_model=UnreadCountResponse,
    summary="Unread notification count",
    description="Badge count for the bell icon. Anonymous callers get 0.",
)
async def get_unread_count(
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> UnreadCountResponse:
    emp_code = _emp_code(user)
    if not emp_code:
        return UnreadCountResponse(unread_count=0)
    return UnreadCountResponse(unread_count=await NotificationService(session).get_unread_count(emp_code))


# PUBLIC_INTERFACE
@router.get(
    "/count-by-category",
    response_model=CategoryCountResponse,
    summary="Unread notifications per category",
)
async def get_count_by_category(
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> CategoryCountResponse:
    emp_code = _emp_code(user)
    if not emp_code:
        return CategoryCountResponse()
    svc = NotificationService(session)
    return CategoryCountResponse(
        counts=await svc.get_unread_by_category(emp_code),
        summary=await svc.get_count_by_category(emp_code),
    )


# PUBLIC_INTERFACE
@router.get(
    "/list",
    response_model=NotificationListResponse,
    summary="List notifications",
    description="Newest first. category 'ALL' or empty lists every category.",
)
async def list_notifications(
    category: Optional[str] = Query(None),
    is_read: Optional[bool] = Query(None, alias="isRead"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=200, alias="pageSize"),
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> NotificationListResponse:
    emp_code = _emp_code(user)
    if not emp_code:
        return NotificationListResponse()
    filters = NotificationFilterDto(category=category, is_read=is_read, page=page, page_size=page_size)
    return await NotificationService(session).get_notifications(emp_code, filters)


# PUBLIC_INTERFACE
@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark every notification read",
)
async def mark_all_as_read(
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> MarkAllReadResponse:
    emp_code = _require_emp_code(user)
    count = await NotificationService(session).mark_all_as_read(emp_code)
    return MarkAllReadResponse(message=f"{count} notifications marked as read", count=count)


# PUBLIC_INTERFACE
@router.post(
    "/read/{notification_id}",
    response_model=ApiResult,
    summary="Mark one notification read",
)
async def mark_as_read(
    notification_id: int = Path(...),
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> ApiResult:
    emp_code = _require_emp_code(user)
    if not await NotificationService(session).mark_as_read(notification_id, emp_code):
        raise HTTPException(status_code=404, detail="Notification not found")
    return ApiResult(success=True, message="Notification marked as read")


# PUBLIC_INTERFACE
@router.post(
    "/create",
    response_model=CreatedNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a movement notification",
    dependencies=[Depends(require_admin_or_super_user)],
)
async def create_notification(
    payload: CreateMovementNotificationRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> CreatedNotificationResponse:
    notification_id = await NotificationService(session).create_movement_notification(payload)
    return CreatedNotificationResponse(notification_id=notification_id)


# PUBLIC_INTERFACE
@router.get(
    "/{notification_id}",
    response_model=NotificationDetailResponse,
    summary="Get notification",
)
async def get_notification(
    notification_id: int = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> NotificationDetailResponse:
    dto = await NotificationService(session).get_notification_by_id(notification_id)
    if dto is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationDetailResponse(data=dto)
