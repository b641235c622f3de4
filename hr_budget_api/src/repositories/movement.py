from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from src.db.models.movement import APPROVAL_PENDING, PeMovement
from .base import BaseRepository


class MovementRepository(BaseRepository):
    """Repository for HRB_PE_MOVEMENT."""

    async def get(self, movement_id: int) -> Optional[PeMovement]:
        stmt = select(PeMovement).where(PeMovement.id == movement_id)
        return await self.scalar_one_or_none(stmt)

    async def list_pending(
        self,
        *,
        emp_code: Optional[str] = None,
        company_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[PeMovement]:
        stmt = select(PeMovement).where(PeMovement.approval_status == APPROVAL_PENDING)
        if emp_code:
            stmt = stmt.where(PeMovement.pending_emp_code == emp_code)
        if company_id is not None:
            stmt = stmt.where(PeMovement.company_id == company_id)
        stmt = stmt.order_by(PeMovement.updated_date.desc(), PeMovement.id.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def insert(self, movement: PeMovement) -> PeMovement:
        await self.add(movement)
        await self.commit()
        return movement
