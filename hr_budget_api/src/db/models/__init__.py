"""
ORM models for identity, budget configuration, PE movements, notifications,
and activity/upload logs.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .security import (  # noqa: F401
    User,
    Role,
    Permission,
    UserRole,
    RolePermission,
)
from .budget_config import (  # noqa: F401
    BuSupConfig,
    PeAllocationConfig,
)
from .logs import (  # noqa: F401
    ActivityLog,
    UploadLog,
)
from .movement import PeMovement  # noqa: F401
from .notification import PeNotification  # noqa: F401
