"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each table group. Tenant-scoped
identity queries read the tenant from src.db.session.current_tenant_var.
"""
