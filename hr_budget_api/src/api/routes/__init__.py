"""
API route modules.

This package contains subrouters for:
- Auth: login, logout, refresh, current user and GetCurrentUser for the menu
- Users: user administration and role assignment
- Notification: bell counts, listing and read state
- PEManagement: movement approval workflow and attachments
- Settings: BU/SUP, PE allocation and audit log screens

Routers are included from src.api.main (under the /api prefix).
"""
