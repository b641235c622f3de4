from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_current_active_user, get_optional_user, get_tenant_session
from src.core.roles import is_admin
from src.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from src.db.models.security import User
from src.db.session import get_current_tenant
from src.repositories.security import SecurityRepository
from src.schemas.auth import (
    CurrentUserInfo,
    CurrentUserResponse,
    Message,
    RefreshRequest,
    TokenPair,
    UserRead,
)
from src.schemas.audit import ActivityActions, ActivityModules
from src.services.audit import AuditLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])
current_user_router = APIRouter(prefix="/Auth", tags=["Auth"])


def user_to_read(user: User, roles: List[str]) -> UserRead:
    return UserRead(
        id=user.id,
        user_name=user.user_name,
        email=user.email,
        name=user.name,
        emp_code=user.emp_code,
        company=user.company,
        auth_type=user.auth_type,
        is_active=user.is_active,
        is_superadmin=user.is_superadmin,
        created_at=user.created_at,
        updated_at=user.updated_at,
        roles=roles,
    )


def _tenant_claim() -> Optional[str]:
    tenant = get_current_tenant()
    return str(tenant) if tenant is not None else None


async def _issue_tokens(repo: SecurityRepository, user: User) -> TokenPair:
    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    tenant = _tenant_claim()
    access = create_access_token(subject=str(user.id), tenant_id=tenant, roles=roles, emp_code=user.emp_code)
    refresh = create_refresh_token(subject=str(user.id), tenant_id=tenant)
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form (user name + password) and receive access/refresh tokens.",
)
async def login_for_tokens(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    """Authenticate user and issue tokens."""
    repo = SecurityRepository(session)
    audit = AuditLogService(session)
    user = await repo.get_user_by_user_name(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        await audit.log(
            request, ActivityModules.AUTHENTICATION, ActivityActions.LOGIN,
            target_id=form_data.username, target_type="User",
            status="FAILED", error_message="Invalid credentials",
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is inactive")

    request.state.user = user
    await audit.log(request, ActivityModules.AUTHENTICATION, ActivityActions.LOGIN, target_id=str(user.id), target_type="User")
    return await _issue_tokens(repo, user)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new access token from a valid refresh token.",
)
async def refresh_token(
    payload: RefreshRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        claims = decode_token(payload.refresh_token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if claims.get("type") != REFRESH_TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Invalid token type")
    if str(claims.get("tenant_id") or "") != str(_tenant_claim() or ""):
        raise HTTPException(status_code=403, detail="Tenant mismatch")

    repo = SecurityRepository(session)
    try:
        user = await repo.get_user_by_id(UUID(str(claims.get("sub"))))
    except ValueError:
        user = None
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return await _issue_tokens(repo, user)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=Message,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> Message:
    """Acknowledge logout in stateless JWT systems."""
    if user is not None:
        await AuditLogService(session).log(
            request, ActivityModules.AUTHENTICATION, ActivityActions.LOGOUT, target_id=str(user.id), target_type="User"
        )
    return Message(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated user and their roles.",
)
async def read_current_user(
    request: Request,
    user: User = Depends(get_current_active_user),
) -> UserRead:
    """Return current user profile."""
    return user_to_read(user, list(request.state.user_roles))


# PUBLIC_INTERFACE
@current_user_router.get(
    "/GetCurrentUser",
    response_model=CurrentUserResponse,
    response_model_exclude_none=True,
    summary="Current user for the menu script",
    description=(
        "Returns the logged-in user's employee code, roles and admin flag. "
        "Anonymous callers get success=false with 'Not logged in' (HTTP 200)."
    ),
)
async def get_current_user_info(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> CurrentUserResponse:
    """Shape the current user the way the role-based menu expects it."""
    if user is None or not user.is_active:
        return CurrentUserResponse(success=False, message="Not logged in")

    roles: List[str] = list(request.state.user_roles)
    permissions = await SecurityRepository(session).list_permission_codes_for_user(user.id)
    return CurrentUserResponse(
        success=True,
        user=CurrentUserInfo(
            emp_code=user.display_code,
            user_id=user.user_name,
            user_role=roles[0] if roles else None,
            company=user.company,
            auth_type=user.auth_type,
            roles=roles,
            permissions=permissions,
            is_admin=is_admin(roles, user.is_superadmin),
        ),
    )
