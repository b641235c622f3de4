"""
Domain exceptions raised by services.

Routes translate NotFoundError to 404 and BusinessRuleError to 400; anything
else falls through to the global 500 handler.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class HRBudgetError(Exception):
    """Base class for application errors."""


class NotFoundError(HRBudgetError):
    """A requested record does not exist (or is not visible to the caller)."""


class BusinessRuleError(HRBudgetError):
    """The request is well-formed but violates a business rule."""


class DevUserCreationError(HRBudgetError):
    """
    Fatal failure while creating the development account during seeding.

    The message carries the identity errors joined as "Code: Description, ...".
    """

    def __init__(self, errors: Iterable[Tuple[str, str]]) -> None:
        self.errors = list(errors)
        joined = ", ".join(f"{code}: {description}" for code, description in self.errors)
        super().__init__(f"Failed to create dev user: {joined}")
