from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select, update

from src.db.models.notification import PeNotification
from .base import BaseRepository


class NotificationRepository(BaseRepository):
    """Repository for HRB_PE_NOTIFICATION rows addressed to an employee."""

    @staticmethod
    def _active_unread(emp_code: str):
        return (
            PeNotification.recipient_emp_code == emp_code,
            PeNotification.is_read.is_(False),
            PeNotification.is_active.is_(True),
        )

    async def count_unread(self, emp_code: str) -> int:
        stmt = select(PeNotification.notification_id).where(*self._active_unread(emp_code))
        return await self.count(stmt)

    async def count_unread_by_category(self, emp_code: str) -> Dict[str, int]:
        stmt = (
            select(PeNotification.notification_category, func.count())
            .where(*self._active_unread(emp_code))
            .group_by(PeNotification.notification_category)
        )
        result = await self.execute(stmt)
        return {category: int(n) for category, n in result.all()}

    async def list_for_recipient(
        self,
        emp_code: str,
        *,
        category: Optional[str],
        is_read: Optional[bool],
        limit: int,
        offset: int,
    ) -> Tuple[List[PeNotification], int, int]:
        """Return (page, total matching, unread matching) for the recipient."""
        stmt = select(PeNotification).where(
            PeNotification.recipient_emp_code == emp_code,
            PeNotification.is_active.is_(True),
        )
        if category:
            stmt = stmt.where(PeNotification.notification_category == category)
        if is_read is not None:
            stmt = stmt.where(PeNotification.is_read.is_(is_read))

        total = await self.count(stmt)
        unread = await self.count(stmt.where(PeNotification.is_read.is_(False)))

        page_stmt = (
            stmt.order_by(PeNotification.created_date.desc(), PeNotification.notification_id.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = list(await self.scalars(page_stmt))
        return rows, total, unread

    async def get(self, notification_id: int) -> Optional[PeNotification]:
        stmt = select(PeNotification).where(PeNotification.notification_id == notification_id)
        return await self.scalar_one_or_none(stmt)

    async def get_for_recipient(self, notification_id: int, emp_code: str) -> Optional[PeNotification]:
        stmt = select(PeNotification).where(
            PeNotification.notification_id == notification_id,
            PeNotification.recipient_emp_code == emp_code,
        )
        return await self.scalar_one_or_none(stmt)

    async def mark_all_read(self, emp_code: str, read_at: datetime) -> int:
        stmt = (
            update(PeNotification)
            .where(*self._active_unread(emp_code))
            .values(is_read=True, read_date=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        await self.commit()
        return int(result.rowcount or 0)

    async def insert(self, notification: PeNotification) -> PeNotification:
        await self.add(notification)
        await self.commit()
        return notification
