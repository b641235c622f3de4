from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select

from src.db.models.security import Permission, Role, RolePermission, User, UserRole
from src.db.session import get_current_tenant
from .base import BaseRepository


def _in_current_tenant(model):
    tenant = get_current_tenant()
    if tenant is None:
        return model.tenant_id.is_(None)
    return model.tenant_id == tenant


class SecurityRepository(BaseRepository):
    """Repository for users, roles and permissions of the current tenant (or host)."""

    # Users
    async def get_user_by_user_name(self, user_name: str) -> Optional[User]:
        stmt = select(User).where(_in_current_tenant(User), func.lower(User.user_name) == user_name.lower())
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(_in_current_tenant(User), User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def count_users(self) -> int:
        return await self.count(select(User.id).where(_in_current_tenant(User)))

    async def list_users(self, *, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = select(User).where(_in_current_tenant(User))
        if search:
            like = f"%{search}%"
            stmt = stmt.where(
                User.user_name.ilike(like) | User.emp_code.ilike(like) | User.email.ilike(like)
            )
        stmt = stmt.order_by(User.user_name).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def insert_user(self, user: User) -> User:
        user.tenant_id = get_current_tenant()
        await self.add(user)
        await self.commit()
        return await self.get_user_by_id(user.id)  # type: ignore

    async def save_user(self, user: User) -> User:
        await self.add(user)
        await self.commit()
        return user

    async def delete_user(self, user_id: UUID) -> bool:
        stmt = delete(User).where(_in_current_tenant(User), User.id == user_id)
        result = await self.execute(stmt)
        await self.commit()
        return (result.rowcount or 0) > 0

    # Roles
    async def list_roles(self) -> List[Role]:
        stmt = select(Role).where(_in_current_tenant(Role)).order_by(Role.name)
        result = await self.scalars(stmt)
        return list(result)

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        stmt = select(Role).where(_in_current_tenant(Role), Role.name == name)
        return await self.scalar_one_or_none(stmt)

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(name=name, description=description, tenant_id=get_current_tenant())
        await self.add(role)
        await self.commit()
        return role

    async def list_roles_for_user(self, user_id: UUID) -> List[Role]:
        stmt = (
            select(Role)
            .join(UserRole, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.scalars(stmt)
        return list(result)

    async def list_permission_codes_for_user(self, user_id: UUID) -> List[str]:
        stmt = (
            select(Permission.code)
            .join(RolePermission, Permission.id == RolePermission.permission_id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .where(UserRole.user_id == user_id)
            .distinct()
            .order_by(Permission.code)
        )
        result = await self.scalars(stmt)
        return list(result)

    async def assign_role_to_user(self, user_id: UUID, role_id: UUID) -> None:
        existing = await self.scalar_one_or_none(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if existing:
            return
        await self.add(UserRole(user_id=user_id, role_id=role_id, tenant_id=get_current_tenant()))
        await self.commit()

    async def remove_role_from_user(self, user_id: UUID, role_id: UUID) -> None:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        await self.execute(stmt)
        await self.commit()

    # Permissions
    async def get_permission_by_code(self, code: str) -> Optional[Permission]:
        stmt = select(Permission).where(_in_current_tenant(Permission), Permission.code == code)
        return await self.scalar_one_or_none(stmt)

    async def create_permission(self, code: str, description: Optional[str] = None) -> Permission:
        perm = Permission(code=code, description=description, tenant_id=get_current_tenant())
        await self.add(perm)
        await self.commit()
        return perm

    async def add_permission_to_role(self, role_id: UUID, permission_id: UUID) -> None:
        existing = await self.scalar_one_or_none(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        if existing:
            return
        await self.add(RolePermission(role_id=role_id, permission_id=permission_id, tenant_id=get_current_tenant()))
        await self.commit()
