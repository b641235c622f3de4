from __future__ import annotations

import logging
from typing import AsyncGenerator, List, Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.roles import Role, has_role_access
from src.core.security import try_decode_access_token
from src.db.models.security import User
from src.db.session import get_async_session, get_current_tenant
from src.repositories.security import SecurityRepository

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); login endpoint path referenced here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# PUBLIC_INTERFACE
def parse_tenant_header(value: Optional[str]) -> Optional[UUID]:
    """Parse an X-Tenant-ID value; empty means host. Raises ValueError when malformed."""
    if not value:
        return None
    return UUID(value)


# PUBLIC_INTERFACE
async def get_tenant_id(x_tenant_id: str | None = Header(default=None, alias="X-Tenant-ID")) -> Optional[UUID]:
    """
    Extract the tenant id from the X-Tenant-ID header.

    A missing header selects the host context.

    Raises:
        HTTPException: 400 Bad Request if the header is not a valid UUID.
    """
    try:
        return parse_tenant_header(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header must be a valid UUID string.",
        )


# PUBLIC_INTERFACE
async def get_tenant_session(
    tenant_id: Optional[UUID] = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession for the request's tenant.

    The tenant context itself is set by the request middleware; this dependency
    rejects malformed tenant headers before any data access happens.
    """
    yield session


async def _resolve_user(request: Request, token: Optional[str], session: AsyncSession) -> Optional[User]:
    claims = try_decode_access_token(token)
    if claims is None:
        return None

    tok_tenant = claims.get("tenant_id")
    current = get_current_tenant()
    if str(tok_tenant or "") != str(current or ""):
        logger.info("Token tenant %s does not match request tenant %s", tok_tenant, current)
        return None

    user_id = claims.get("sub")
    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        return None

    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(user_uuid)
    if user is None:
        return None
    request.state.user = user
    request.state.user_roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    return user


# PUBLIC_INTERFACE
async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_tenant_session),
) -> User:
    """
    Resolve and return the current user from the Authorization bearer token.

    The token's tenant claim must match the request tenant (both empty for host users).
    """
    user = await _resolve_user(request, token, session)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return user


# PUBLIC_INTERFACE
async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(optional_oauth2_scheme),
    session: AsyncSession = Depends(get_tenant_session),
) -> Optional[User]:
    """Like get_current_user, but anonymous or invalid callers resolve to None."""
    return await _resolve_user(request, token, session)


# PUBLIC_INTERFACE
async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    """Ensure user is active."""
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


# PUBLIC_INTERFACE
def current_roles(request: Request) -> List[str]:
    """Role codes resolved for the current request's user."""
    return list(getattr(request.state, "user_roles", None) or [])


# PUBLIC_INTERFACE
def require_roles(*required: Role | str):
    """
    Create a dependency that requires the current user to satisfy one of `required`.

    Evaluation matches the menu client: administrators pass everything and
    SUPER_USER is implied by ADMIN.
    """

    async def _dep(request: Request, user: User = Depends(get_current_active_user)) -> User:
        if not has_role_access(required, current_roles(request), user.is_superadmin):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _dep


require_admin_or_super_user = require_roles(Role.ADMIN, Role.SUPER_USER)
