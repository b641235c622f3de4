import asyncio
import os
import tempfile
from typing import Iterable, Optional

import pytest

# Settings are read at import time by src.api.main, so pin them before any src import.
_CONFIG_DIR = tempfile.mkdtemp(prefix="hrb-tests-")
os.environ["HRB_APPSETTINGS_FILE"] = os.path.join(_CONFIG_DIR, "missing-appsettings.json")
os.environ["CONNECTIONSTRINGS__DEFAULT"] = f"sqlite:///{os.path.join(_CONFIG_DIR, 'default.db')}"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["CORS_ORIGINS"] = "http://localhost"

from sqlalchemy.pool import NullPool  # noqa: E402

from src.core.security import create_access_token  # noqa: E402
from src.db.base import Base  # noqa: E402
from src.db.models.security import User  # noqa: E402
from src.db.seed import DataSeedContext, RoleDataSeedContributor  # noqa: E402
from src.db.session import dispose_engine, get_session_maker, init_engine  # noqa: E402
from src.services.identity import IdentityUserManager  # noqa: E402

TEST_PASSWORD = "Passw0rd!"


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


async def _create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def db(tmp_path):
    """A fresh SQLite database bound to the global engine for the duration of a test."""
    engine = init_engine(f"sqlite+aiosqlite:///{tmp_path / 'hrb.db'}", poolclass=NullPool)
    run(_create_schema(engine))
    yield engine
    run(dispose_engine())


async def create_user(
    user_name: str,
    roles: Iterable[str] = (),
    *,
    emp_code: Optional[str] = None,
    name: Optional[str] = None,
    company: Optional[str] = None,
    is_superadmin: bool = False,
    is_active: bool = True,
) -> User:
    """Create a host user (seeding the role table first) and assign `roles`."""
    async with get_session_maker()() as session:
        await RoleDataSeedContributor(session).seed(DataSeedContext())
        manager = IdentityUserManager(session)
        result = await manager.create(
            User(
                user_name=user_name,
                email=f"{user_name}@example.com",
                name=name,
                emp_code=emp_code,
                company=company,
                is_superadmin=is_superadmin,
                is_active=is_active,
            ),
            TEST_PASSWORD,
        )
        assert result.succeeded, result.error_pairs()
        if roles:
            assert (await manager.set_roles(result.user, list(roles))).succeeded
        return result.user


def auth_headers(user: User, roles: Iterable[str] = ()) -> dict:
    token = create_access_token(subject=str(user.id), tenant_id=None, roles=list(roles), emp_code=user.emp_code)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from src.api.main import app

    return TestClient(app)


@pytest.fixture
def admin(db):
    roles = ["ADMIN"]
    user = run(create_user("admin", roles, emp_code="A001", name="Admin User", company="BJC"))
    return user, auth_headers(user, roles)


@pytest.fixture
def employee(db):
    roles = ["USER"]
    user = run(create_user("somchai", roles, emp_code="E100", name="Somchai", company="BIGC"))
    return user, auth_headers(user, roles)
