from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional


class Role(str, Enum):
    """Role codes understood by the API and the menu client."""

    ADMIN = "ADMIN"
    SUPER_USER = "SUPER_USER"
    HRBP = "HRBP"
    USER = "USER"


def _codes(values: Iterable[object]) -> set[str]:
    return {v.value if isinstance(v, Role) else str(v) for v in values if v is not None}


def parse_required_roles(data_role: Optional[str]) -> list[str]:
    """Split a comma separated role attribute (e.g. 'ADMIN, HRBP') into trimmed codes."""
    if not data_role:
        return []
    return [part.strip() for part in data_role.split(",") if part.strip()]


# PUBLIC_INTERFACE
def is_admin(roles: Iterable[object], admin_flag: bool = False) -> bool:
    """Admin when the explicit flag is set or the ADMIN role is held."""
    return bool(admin_flag) or Role.ADMIN.value in _codes(roles)


# PUBLIC_INTERFACE
def is_super_user(roles: Iterable[object], admin_flag: bool = False) -> bool:
    """Admins are implicitly super users."""
    roles = list(roles)
    return is_admin(roles, admin_flag) or Role.SUPER_USER.value in _codes(roles)


# PUBLIC_INTERFACE
def has_role_access(
    required: Iterable[object],
    roles: Iterable[object],
    admin_flag: bool = False,
) -> bool:
    """
    Decide whether a holder of `roles` may see or call something that requires any of `required`.

    Rules:
      - admins pass everything
      - ADMIN is satisfied only by admins
      - SUPER_USER is satisfied by super users (and therefore admins)
      - any other code is satisfied by plain membership
    """
    roles = list(roles)
    if is_admin(roles, admin_flag):
        return True
    held = _codes(roles)
    super_user = is_super_user(roles, admin_flag)
    for code in _codes(required):
        if code == Role.ADMIN.value:
            continue
        if code == Role.SUPER_USER.value:
            if super_user:
                return True
            continue
        if code in held:
            return True
    return False
