from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BusinessRuleError, NotFoundError
from src.db.base import utcnow
from src.db.models.budget_config import BuSupConfig, PeAllocationConfig
from src.repositories.budget_config import BuSupRepository, PeAllocationRepository
from src.schemas.budget_config import BuSupCreate, BuSupUpdate, PeAllocationItem
from src.services.base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_UPDATED_BY = "System"


class BudgetConfigService(BaseService):
    """Settings screens: BU/SUP configuration and PE allocation batches."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.bu_sup = BuSupRepository(session)
        self.allocations = PeAllocationRepository(session)

    # BU / SUP

    # PUBLIC_INTERFACE
    async def list_bu_sup(self, company_id: Optional[int] = None, active_only: bool = False) -> List[BuSupConfig]:
        return await self.bu_sup.list_configs(company_id=company_id, active_only=active_only)

    # PUBLIC_INTERFACE
    async def get_bu_sup(self, bu_id: int) -> BuSupConfig:
        row = await self.bu_sup.get(bu_id)
        if row is None:
            raise NotFoundError(f"BU/SUP config {bu_id} not found")
        return row

    # PUBLIC_INTERFACE
    async def create_bu_sup(self, payload: BuSupCreate, updated_by: str) -> BuSupConfig:
        row = BuSupConfig(
            company_id=payload.company_id,
            bu_code=payload.bu_code,
            bu_name=payload.bu_name,
            cobu_code=payload.cobu_code,
            is_active=payload.is_active,
            updated_by=updated_by,
            updated_date=utcnow(),
        )
        await self.bu_sup.add(row)
        await self.bu_sup.commit()
        logger.info("BU/SUP %s (%s) created by %s", row.bu_id, row.bu_code, updated_by)
        return row

    # PUBLIC_INTERFACE
    async def update_bu_sup(self, bu_id: int, payload: BuSupUpdate, updated_by: str) -> Tuple[dict, BuSupConfig]:
        """Apply the given fields and return (previous values, updated row)."""
        row = await self.get_bu_sup(bu_id)
        before = _bu_sup_snapshot(row)
        for name, value in payload.model_dump(exclude_unset=True).items():
            setattr(row, name, value)
        row.updated_by = updated_by
        row.updated_date = utcnow()
        await self.bu_sup.commit()
        return before, row

    # PUBLIC_INTERFACE
    async def toggle_bu_sup(self, bu_id: int, updated_by: str) -> BuSupConfig:
        row = await self.get_bu_sup(bu_id)
        row.is_active = not bool(row.is_active)
        row.updated_by = updated_by
        row.updated_date = utcnow()
        await self.bu_sup.commit()
        logger.info("BU/SUP %s set active=%s by %s", bu_id, row.is_active, updated_by)
        return row

    # PE allocation

    # PUBLIC_INTERFACE
    async def list_allocations(
        self, allocate_id: Optional[int] = None, company_id: Optional[int] = None
    ) -> List[PeAllocationConfig]:
        return await self.allocations.list_allocations(allocate_id=allocate_id, company_id=company_id)

    # PUBLIC_INTERFACE
    async def get_max_allocate_id(self) -> int:
        return await self.allocations.max_allocate_id()

    # PUBLIC_INTERFACE
    async def save_allocation_batch(
        self, items: Sequence[PeAllocationItem], created_by: Optional[str] = None
    ) -> int:
        """
        Insert or update every allocation in one transaction.

        Rows are matched on (allocate id, company, cost center). Returns the number saved.
        """
        if not items:
            raise BusinessRuleError("Allocations list cannot be empty")
        updated_by = created_by or DEFAULT_UPDATED_BY
        now = utcnow()
        for item in items:
            row = await self.allocations.get(item.allocate_id, item.company_id, item.cost_center_code)
            if row is None:
                row = PeAllocationConfig(
                    allocate_id=item.allocate_id,
                    company_id=item.company_id,
                    cost_center_code=item.cost_center_code,
                )
                await self.allocations.add(row)
            row.emp_code = item.emp_code
            row.allocate_value = item.allocate_value
            row.is_active = item.is_active
            row.updated_by = updated_by
            row.updated_date = now
            await self.allocations.flush()
        await self.allocations.commit()
        logger.info("Saved %d PE allocations by %s", len(items), updated_by)
        return len(items)

    # PUBLIC_INTERFACE
    async def delete_allocation(self, allocate_id: int, company_id: int, cost_center_code: str) -> None:
        row = await self.allocations.get(allocate_id, company_id, cost_center_code)
        if row is None:
            raise NotFoundError("Allocation not found")
        await self.allocations.delete(row)


def _bu_sup_snapshot(row: BuSupConfig) -> dict:
    return {
        "buId": row.bu_id,
        "companyId": row.company_id,
        "buCode": row.bu_code,
        "buName": row.bu_name,
        "cobuCode": row.cobu_code,
        "isActive": row.is_active,
    }
