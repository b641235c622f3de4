"""
Client-side helpers for pages that consume the HR budget API.

UserMenu loads the current user from Auth/GetCurrentUser and toggles menu
elements (MenuDocument / MenuElement) according to the user's roles.
"""
from .menu import MenuDocument, MenuElement  # noqa: F401
from .user_menu import CurrentUser, UserMenu  # noqa: F401
