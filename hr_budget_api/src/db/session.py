from __future__ import annotations

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncGenerator, Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings, to_async_url


_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None

# Tenant of the current unit of work; None is the host context.
current_tenant_var: ContextVar[Optional[UUID]] = ContextVar("current_tenant", default=None)


# PUBLIC_INTERFACE
def init_engine(url: str | None = None, **engine_kwargs) -> AsyncEngine:
    """
    (Re)create the global AsyncEngine and session maker.

    Without a URL the configured ConnectionStrings.Default is used.
    """
    global _ENGINE, _SESSION_MAKER
    settings = get_settings()
    engine_kwargs.setdefault("echo", settings.SQL_ECHO)
    _ENGINE = create_async_engine(
        to_async_url(url) if url else settings.async_database_url,
        pool_pre_ping=True,
        **engine_kwargs,
    )
    _SESSION_MAKER = async_sessionmaker(
        bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
    )
    return _ENGINE


def _ensure_engine_initialized() -> None:
    """Lazily initialize the AsyncEngine and session maker."""
    if _ENGINE is None or _SESSION_MAKER is None:
        init_engine()


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Dispose the global engine (used on shutdown and by tests)."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.
    Ensures engine/session factory is initialized.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
def get_current_tenant() -> Optional[UUID]:
    """Return the tenant of the current context, or None for the host."""
    return current_tenant_var.get()


# PUBLIC_INTERFACE
@asynccontextmanager
async def tenant_context(tenant_id: Union[str, UUID, None]) -> AsyncGenerator[Optional[UUID], None]:
    """
    Run a block as the given tenant (None switches to the host context).

    Usage:
        async with tenant_context(tenant_id):
            ...  # repositories filter on this tenant
    """
    value = UUID(str(tenant_id)) if tenant_id is not None else None
    token = current_tenant_var.set(value)
    try:
        yield value
    finally:
        current_tenant_var.reset(token)
