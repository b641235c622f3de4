from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from src.db.models.budget_config import BuSupConfig, PeAllocationConfig
from .base import BaseRepository


class BuSupRepository(BaseRepository):
    """Repository for business unit / supplier configuration."""

    async def list_configs(
        self, *, company_id: Optional[int] = None, active_only: bool = False
    ) -> List[BuSupConfig]:
        stmt = select(BuSupConfig)
        if company_id is not None:
            stmt = stmt.where(BuSupConfig.company_id == company_id)
        if active_only:
            stmt = stmt.where(BuSupConfig.is_active.is_(True))
        stmt = stmt.order_by(BuSupConfig.bu_code, BuSupConfig.bu_id)
        result = await self.scalars(stmt)
        return list(result)

    async def get(self, bu_id: int) -> Optional[BuSupConfig]:
        stmt = select(BuSupConfig).where(BuSupConfig.bu_id == bu_id)
        return await self.scalar_one_or_none(stmt)


class PeAllocationRepository(BaseRepository):
    """Repository for PE allocation percentages keyed by (allocate id, company, cost center)."""

    async def list_allocations(
        self, *, allocate_id: Optional[int] = None, company_id: Optional[int] = None, active_only: bool = True
    ) -> List[PeAllocationConfig]:
        stmt = select(PeAllocationConfig)
        if allocate_id is not None:
            stmt = stmt.where(PeAllocationConfig.allocate_id == allocate_id)
        if company_id is not None:
            stmt = stmt.where(PeAllocationConfig.company_id == company_id)
        if active_only:
            stmt = stmt.where(PeAllocationConfig.is_active.is_(True))
        stmt = stmt.order_by(
            PeAllocationConfig.allocate_id, PeAllocationConfig.company_id, PeAllocationConfig.cost_center_code
        )
        result = await self.scalars(stmt)
        return list(result)

    async def get(self, allocate_id: int, company_id: int, cost_center_code: str) -> Optional[PeAllocationConfig]:
        stmt = select(PeAllocationConfig).where(
            PeAllocationConfig.allocate_id == allocate_id,
            PeAllocationConfig.company_id == company_id,
            PeAllocationConfig.cost_center_code == cost_center_code,
        )
        return await self.scalar_one_or_none(stmt)

    async def max_allocate_id(self) -> int:
        result = await self.execute(select(func.max(PeAllocationConfig.allocate_id)))
        return int(result.scalar_one_or_none() or 0)

    async def delete(self, row: PeAllocationConfig) -> None:
        await self.session.delete(row)
        await self.commit()
