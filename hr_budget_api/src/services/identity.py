"""
User creation with identity-style validation.

Validation failures are collected rather than raised so callers (seeding,
the user admin API) can decide how to surface them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import get_password_hash
from src.db.models.security import User
from src.repositories.security import SecurityRepository
from src.services.base import BaseService

logger = logging.getLogger(__name__)

ALLOWED_USER_NAME_CHARS = re.compile(r"^[A-Za-z0-9\-._@+]+$")
REQUIRED_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class IdentityError:
    code: str
    description: str


@dataclass
class IdentityResult:
    """Outcome of an identity operation; errors is empty on success."""
    errors: List[IdentityError] = field(default_factory=list)
    user: Optional[User] = None

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def error_pairs(self) -> List[Tuple[str, str]]:
        return [(e.code, e.description) for e in self.errors]

    @classmethod
    def failed(cls, errors: Iterable[IdentityError]) -> "IdentityResult":
        return cls(errors=list(errors))


def validate_email(email: Optional[str]) -> bool:
    """Accept a single '@' that is neither first nor last, like the identity framework does."""
    if not email or email.count("@") != 1:
        return False
    return not (email.startswith("@") or email.endswith("@")) and " " not in email


def validate_password(password: Optional[str]) -> List[IdentityError]:
    """Default identity password policy."""
    password = password or ""
    errors: List[IdentityError] = []
    if len(password) < REQUIRED_PASSWORD_LENGTH:
        errors.append(IdentityError(
            "PasswordTooShort", f"Passwords must be at least {REQUIRED_PASSWORD_LENGTH} characters."
        ))
    if all(ch.isalnum() for ch in password):
        errors.append(IdentityError(
            "PasswordRequiresNonAlphanumeric", "Passwords must have at least one non alphanumeric character."
        ))
    if not any(ch.isdigit() for ch in password):
        errors.append(IdentityError("PasswordRequiresDigit", "Passwords must have at least one digit ('0'-'9')."))
    if not any(ch.islower() for ch in password):
        errors.append(IdentityError("PasswordRequiresLower", "Passwords must have at least one lowercase ('a'-'z')."))
    if not any(ch.isupper() for ch in password):
        errors.append(IdentityError("PasswordRequiresUpper", "Passwords must have at least one uppercase ('A'-'Z')."))
    return errors


class IdentityUserManager(BaseService):
    """Creates and updates users in the current tenant after validating them."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = SecurityRepository(session)

    async def _validate_user(self, user: User) -> List[IdentityError]:
        errors: List[IdentityError] = []
        user_name = user.user_name or ""
        if not user_name or not ALLOWED_USER_NAME_CHARS.match(user_name):
            errors.append(IdentityError(
                "InvalidUserName", f"Username '{user_name}' is invalid, can only contain letters or digits."
            ))
        elif await self.repo.get_user_by_user_name(user_name):
            errors.append(IdentityError("DuplicateUserName", f"Username '{user_name}' is already taken."))
        if not validate_email(user.email):
            errors.append(IdentityError("InvalidEmail", f"Email '{user.email or ''}' is invalid."))
        return errors

    # PUBLIC_INTERFACE
    async def create(self, user: User, password: str) -> IdentityResult:
        """
        Validate and persist a new user with a hashed password.

        Returns:
            IdentityResult with the stored user on success, or the collected errors.
        """
        errors = await self._validate_user(user)
        errors.extend(validate_password(password))
        if errors:
            logger.info("User %s rejected: %s", user.user_name, ", ".join(e.code for e in errors))
            return IdentityResult.failed(errors)

        user.hashed_password = get_password_hash(password)
        stored = await self.repo.insert_user(user)
        logger.info("Created user %s", stored.user_name)
        return IdentityResult(user=stored)

    # PUBLIC_INTERFACE
    async def reset_password(self, user: User, new_password: str) -> IdentityResult:
        """Replace the password after running it through the password policy."""
        errors = validate_password(new_password)
        if errors:
            return IdentityResult.failed(errors)
        user.hashed_password = get_password_hash(new_password)
        await self.repo.save_user(user)
        return IdentityResult(user=user)

    # PUBLIC_INTERFACE
    async def set_roles(self, user: User, role_codes: Sequence[str]) -> IdentityResult:
        """Make the user's role set exactly `role_codes`; unknown codes are reported as errors."""
        wanted = {}
        errors: List[IdentityError] = []
        for code in role_codes:
            role = await self.repo.get_role_by_name(code)
            if role is None:
                errors.append(IdentityError("InvalidRoleName", f"Role name '{code}' is invalid."))
            else:
                wanted[role.id] = role
        if errors:
            return IdentityResult.failed(errors)

        current = {r.id for r in await self.repo.list_roles_for_user(user.id)}
        for role_id in current - set(wanted):
            await self.repo.remove_role_from_user(user.id, role_id)
        for role_id in set(wanted) - current:
            await self.repo.assign_role_to_user(user.id, role_id)
        return IdentityResult(user=user)
