"""
Database seeding.

Contributors:
- Roles (ADMIN, SUPER_USER, HRBP, USER) in the host context
- Development user "dev" / "dev@localhost", only when IsDevelopment is true

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DevUserCreationError
from src.core.logging import configure_logging
from src.core.roles import Role
from src.core.settings import get_app_settings
from src.db.models.security import User
from src.db.session import get_current_tenant, get_session_maker, tenant_context
from src.repositories.security import SecurityRepository
from src.services.identity import IdentityUserManager

logger = logging.getLogger(__name__)

IS_DEVELOPMENT_KEY = "IsDevelopment"

DEV_USER_NAME = "dev"
DEV_USER_EMAIL = "dev@localhost"
DEV_USER_PASSWORD = "Dev@123"
DEV_USER_DISPLAY_NAME = "Developer"

ROLE_DESCRIPTIONS = {
    Role.ADMIN: "Administrator",
    Role.SUPER_USER: "Super user",
    Role.HRBP: "HR business partner",
    Role.USER: "User",
}


@dataclass
class DataSeedContext:
    """Inputs for one seeding run; tenant_id None is the host."""
    properties: Dict[str, Any] = field(default_factory=dict)
    tenant_id: Optional[UUID] = None


class DataSeedContributor(Protocol):
    async def seed(self, context: DataSeedContext) -> None: ...


class RoleDataSeedContributor:
    """Ensures every application role exists."""

    def __init__(self, session: AsyncSession) -> None:
        self.repo = SecurityRepository(session)

    async def seed(self, context: DataSeedContext) -> None:
        async with tenant_context(context.tenant_id):
            for role, description in ROLE_DESCRIPTIONS.items():
                if await self.repo.get_role_by_name(role.value) is None:
                    await self.repo.create_role(role.value, description)
                    logger.info("Seeded role %s", role.value)


class DevUserDataSeedContributor:
    """Creates the local development account in the host context."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = SecurityRepository(session)
        self.user_manager = IdentityUserManager(session)

    async def seed(self, context: DataSeedContext) -> None:
        if IS_DEVELOPMENT_KEY not in context.properties:
            return
        if context.tenant_id is not None or get_current_tenant() is not None:
            return
        if context.properties[IS_DEVELOPMENT_KEY] is not True:
            return

        async with tenant_context(None):
            user = await self.repo.get_user_by_user_name(DEV_USER_NAME)
            if user is None:
                user = await self._create_dev_user()
            else:
                logger.info("Dev user already exists")

            # idempotent; also restores ADMIN on a dev user created without it
            admin = await self.repo.get_role_by_name(Role.ADMIN.value)
            if admin is not None:
                await self.repo.assign_role_to_user(user.id, admin.id)

    async def _create_dev_user(self) -> User:
        user = User(
            user_name=DEV_USER_NAME,
            email=DEV_USER_EMAIL,
            name=DEV_USER_DISPLAY_NAME,
            emp_code=DEV_USER_NAME,
            is_active=True,
        )
        result = await self.user_manager.create(user, DEV_USER_PASSWORD)
        if not result.succeeded:
            error = DevUserCreationError(result.error_pairs())
            logger.error("%s", error)
            raise error
        logger.info("Created dev user %s", DEV_USER_NAME)
        return result.user


class DataSeeder:
    """Runs contributors in registration order."""

    def __init__(self, contributors: List[DataSeedContributor]) -> None:
        self.contributors = contributors

    @classmethod
    def default(cls, session: AsyncSession) -> "DataSeeder":
        return cls([RoleDataSeedContributor(session), DevUserDataSeedContributor(session)])

    async def seed(self, context: DataSeedContext) -> None:
        for contributor in self.contributors:
            await contributor.seed(context)


# PUBLIC_INTERFACE
async def seed_all(is_development: Optional[bool] = None, session: Optional[AsyncSession] = None) -> None:
    """
    Seed roles and, in development, the dev user.

    Args:
        is_development: overrides the IsDevelopment setting when given.
        session: reuse an existing session instead of opening one.
    """
    if is_development is None:
        is_development = get_app_settings().IsDevelopment
    context = DataSeedContext(properties={IS_DEVELOPMENT_KEY: is_development})

    if session is not None:
        await DataSeeder.default(session).seed(context)
        return
    async with get_session_maker()() as own_session:
        await DataSeeder.default(own_session).seed(context)


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    configure_logging(get_app_settings().LOG_LEVEL)
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
