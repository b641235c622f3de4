"""
Core application utilities.

This package provides:
- Application-level settings layered over appsettings.json
- Structured logging with correlation/tenant context
- Role codes and the shared role evaluation
- Dependency helpers (tenant extraction, current user, role checks)
"""
