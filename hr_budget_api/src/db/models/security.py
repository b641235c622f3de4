from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import Base, UUIDPkMixin, TimestampMixin, TenantMixin


class User(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Identity user. user_name is unique per tenant (NULL tenant = host)."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_name", name="uq_users_tenant_user_name"),
    )

    user_name: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    emp_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    company: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    auth_type: Mapped[str] = mapped_column(String(20), nullable=False, default="LOCAL")
    hashed_password: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_superadmin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="user_roles",
        primaryjoin="User.id==UserRole.user_id",
        secondaryjoin="Role.id==UserRole.role_id",
        back_populates="users",
        lazy="selectin",
    )

    @property
    def display_code(self) -> str:
        """Employee code when present, otherwise the login name."""
        return self.emp_code or self.user_name


class Role(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Role (ADMIN, SUPER_USER, HRBP, ...) grouping permissions."""
    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    users: Mapped[list["User"]] = relationship(
        "User",
        secondary="user_roles",
        primaryjoin="Role.id==UserRole.role_id",
        secondaryjoin="User.id==UserRole.user_id",
        back_populates="roles",
        lazy="selectin",
    )
    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary="role_permissions",
        primaryjoin="Role.id==RolePermission.role_id",
        secondaryjoin="Permission.id==RolePermission.permission_id",
        back_populates="roles",
        lazy="selectin",
    )


class Permission(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Permission code such as 'notification:create' attached to roles."""
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_permissions_tenant_code"),
    )

    code: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="role_permissions",
        primaryjoin="Permission.id==RolePermission.permission_id",
        secondaryjoin="Role.id==RolePermission.role_id",
        back_populates="permissions",
        lazy="selectin",
    )


class UserRole(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Association of users to roles."""
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )

    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)


class RolePermission(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Association of roles to permissions."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),
    )

    role_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
