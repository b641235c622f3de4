from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base


class BuSupConfig(Base):
    """Business unit / supplier configuration (HRB_CONF_BU_SUP)."""
    __tablename__ = "HRB_CONF_BU_SUP"

    bu_id: Mapped[int] = mapped_column("BU_ID", Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[Optional[int]] = mapped_column("COMPANY_ID", Integer, nullable=True)
    bu_code: Mapped[Optional[str]] = mapped_column("BU_CODE", String(20), nullable=True)
    bu_name: Mapped[Optional[str]] = mapped_column("BU_NAME", String(100), nullable=True)
    cobu_code: Mapped[Optional[str]] = mapped_column("COBU_CODE", String(50), nullable=True)
    is_active: Mapped[Optional[bool]] = mapped_column("IS_ACTIVE", Boolean, nullable=True, default=True)
    updated_by: Mapped[Optional[str]] = mapped_column("UPDATED_BY", String(50), nullable=True)
    updated_date: Mapped[Optional[datetime]] = mapped_column("UPDATED_DATE", DateTime(timezone=True), nullable=True)


class PeAllocationConfig(Base):
    """
    Percentage split of a PE budget across cost centers (HRB_CONF_PE_ALLOCATION).

    Keyed by (ALLOCATE_ID, COMPANY_ID, COST_CENTER_CODE); ALLOCATE_VALUE is a percentage.
    """
    __tablename__ = "HRB_CONF_PE_ALLOCATION"

    allocate_id: Mapped[int] = mapped_column("ALLOCATE_ID", Integer, primary_key=True, autoincrement=False)
    company_id: Mapped[int] = mapped_column("COMPANY_ID", Integer, primary_key=True, autoincrement=False)
    cost_center_code: Mapped[str] = mapped_column("COST_CENTER_CODE", String(20), primary_key=True)
    emp_code: Mapped[Optional[str]] = mapped_column("EMP_CODE", String(100), nullable=True)
    allocate_value: Mapped[Optional[Decimal]] = mapped_column("ALLOCATE_VALUE", Numeric(5, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column("IS_ACTIVE", Boolean, nullable=False, default=True)
    updated_by: Mapped[Optional[str]] = mapped_column("UPDATED_BY", String(50), nullable=True)
    updated_date: Mapped[Optional[datetime]] = mapped_column("UPDATED_DATE", DateTime(timezone=True), nullable=True)
