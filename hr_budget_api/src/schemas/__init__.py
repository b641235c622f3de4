"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by domain module (notification, movement, budget_config,
audit, auth) on top of the camelCase base and paging models in common.
"""

from .common import MessageResponse  # noqa: F401
