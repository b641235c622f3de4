from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.routes.auth import user_to_read
from src.core.deps import get_tenant_session, require_roles
from src.core.roles import Role
from src.db.models.security import User
from src.repositories.security import SecurityRepository
from src.schemas.audit import ActivityActions, ActivityModules
from src.schemas.auth import ResetPasswordRequest, RoleRead, UserCreate, UserRead, UserUpdate
from src.schemas.common import ApiResult
from src.services.audit import AuditLogService
from src.services.identity import IdentityResult, IdentityUserManager

router = APIRouter(prefix="/auth", tags=["Users"])

require_admin = require_roles(Role.ADMIN)


def _raise_identity_errors(result: IdentityResult) -> None:
    if not result.succeeded:
        raise HTTPException(
            status_code=400,
            detail=[{"code": code, "description": description} for code, description in result.error_pairs()],
        )


async def _load(repo: SecurityRepository, user_id: UUID) -> User:
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _read(repo: SecurityRepository, user: User) -> UserRead:
    return user_to_read(user, [r.name for r in await repo.list_roles_for_user(user.id)])


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=List[UserRead],
    summary="List users",
    description="List users of the current tenant, optionally filtered by user name, employee code or email.",
    dependencies=[Depends(require_admin)],
)
async def list_users(
    session: AsyncSession = Depends(get_tenant_session),
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[UserRead]:
    repo = SecurityRepository(session)
    return [await _read(repo, u) for u in await repo.list_users(search=search, limit=limit, offset=offset)]


# PUBLIC_INTERFACE
@router.get(
    "/roles",
    response_model=List[RoleRead],
    summary="List roles",
    dependencies=[Depends(require_admin)],
)
async def list_roles(session: AsyncSession = Depends(get_tenant_session)) -> List[RoleRead]:
    return [RoleRead.model_validate(r) for r in await SecurityRepository(session).list_roles()]


# PUBLIC_INTERFACE
@router.post(
    "/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user through the identity validation rules. Validation failures return 400 with code/description pairs.",
    dependencies=[Depends(require_admin)],
)
async def create_user(
    request: Request,
    payload: UserCreate,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    manager = IdentityUserManager(session)
    user = User(
        user_name=payload.user_name,
        email=payload.email,
        name=payload.name,
        emp_code=payload.emp_code,
        company=payload.company,
        is_active=payload.is_active,
        is_superadmin=payload.is_superadmin,
    )
    result = await manager.create(user, payload.password)
    _raise_identity_errors(result)
    if payload.roles:
        _raise_identity_errors(await manager.set_roles(result.user, payload.roles))

    await AuditLogService(session).log(
        request, ActivityModules.USER_MANAGEMENT, ActivityActions.CREATE,
        target_id=str(result.user.id), target_type="User", new_value=payload,
    )
    return await _read(manager.repo, result.user)


# PUBLIC_INTERFACE
@router.get(
    "/users/{user_id}",
    response_model=UserRead,
    summary="Get user",
    dependencies=[Depends(require_admin)],
)
async def get_user(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    return await _read(repo, await _load(repo, user_id))


# PUBLIC_INTERFACE
@router.put(
    "/users/{user_id}",
    response_model=UserRead,
    summary="Update user",
    description="Update profile fields; when roles is given it replaces the user's role set.",
    dependencies=[Depends(require_admin)],
)
async def update_user(
    request: Request,
    payload: UserUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    manager = IdentityUserManager(session)
    user = await _load(manager.repo, user_id)
    before = await _read(manager.repo, user)

    changes = payload.model_dump(exclude_unset=True, exclude={"roles"})
    if "email" in changes and not changes["email"]:
        raise HTTPException(status_code=400, detail="Email is required")
    for name, value in changes.items():
        setattr(user, name, value)
    await manager.repo.save_user(user)
    if payload.roles is not None:
        _raise_identity_errors(await manager.set_roles(user, payload.roles))

    after = await _read(manager.repo, user)
    await AuditLogService(session).log(
        request, ActivityModules.USER_MANAGEMENT, ActivityActions.UPDATE,
        target_id=str(user_id), target_type="User", old_value=before, new_value=after,
    )
    return after


# PUBLIC_INTERFACE
@router.post(
    "/users/{user_id}/toggle-active",
    response_model=UserRead,
    summary="Activate or deactivate user",
    dependencies=[Depends(require_admin)],
)
async def toggle_active(
    request: Request,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    user = await _load(repo, user_id)
    user.is_active = not user.is_active
    await repo.save_user(user)
    await AuditLogService(session).log(
        request, ActivityModules.USER_MANAGEMENT, ActivityActions.UPDATE,
        target_id=str(user_id), target_type="User", new_value={"isActive": user.is_active},
    )
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.post(
    "/users/{user_id}/reset-password",
    response_model=ApiResult,
    summary="Reset user password",
    dependencies=[Depends(require_admin)],
)
async def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> ApiResult:
    manager = IdentityUserManager(session)
    user = await _load(manager.repo, user_id)
    _raise_identity_errors(await manager.reset_password(user, payload.new_password))
    await AuditLogService(session).log(
        request, ActivityModules.USER_MANAGEMENT, ActivityActions.UPDATE,
        target_id=str(user_id), target_type="User", new_value={"password": payload.new_password},
    )
    return ApiResult(success=True, message="Password reset successfully")


# PUBLIC_INTERFACE
@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
    dependencies=[Depends(require_admin)],
)
async def delete_user(
    request: Request,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> None:
    repo = SecurityRepository(session)
    if not await repo.delete_user(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    await AuditLogService(session).log(
        request, ActivityModules.USER_MANAGEMENT, ActivityActions.DELETE, target_id=str(user_id), target_type="User"
    )
