from __future__ import annotations

import logging
from typing import Optional

import requests

from src.client.menu import MenuDocument
from src.core import roles as role_rules
from src.core.roles import Role
from src.schemas.auth import CurrentUserInfo as CurrentUser, CurrentUserResponse

logger = logging.getLogger(__name__)

CURRENT_USER_PATH = "Auth/GetCurrentUser"
ADMIN_MENU_GROUP_ID = "adminMenuGroup"

AVATAR_INITIAL_ID = "userAvatarInitial"
DISPLAY_NAME_ID = "userDisplayName"
EMPLOYEE_NO_ID = "userEmployeeNo"
ROLE_BADGE_ID = "userRoleBadge"
COMPANY_BADGE_ID = "userCompanyBadge"

COMPANY_BADGE_CLASSES = {
    "BJC": "badge bg-success",
    "BIGC": "badge bg-info",
}


class UserMenu:
    """
    Loads the signed-in user once and drives role-based menu visibility.

    Any failure to obtain the user (not logged in, HTTP error, network or
    parse error) hides every admin-only element. Every operation can be
    repeated safely.
    """

    def __init__(
        self,
        api_base: str = "./api/",
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_base = api_base if api_base.endswith("/") else api_base + "/"
        self.session = session or requests.Session()
        self.timeout = timeout
        self._user: Optional[CurrentUser] = None
        self._loaded = False

    @property
    def current_user_url(self) -> str:
        return self.api_base + CURRENT_USER_PATH

    # PUBLIC_INTERFACE
    def init(self, document: MenuDocument) -> None:
        """Fetch the current user and apply menus; a no-op once loaded."""
        if self._loaded:
            return

        try:
            response = self.session.get(self.current_user_url, timeout=self.timeout)
            response.raise_for_status()
            payload = CurrentUserResponse.model_validate(response.json())
        except (requests.RequestException, ValueError) as exc:
            logger.error("Failed to load current user from %s: %s", self.current_user_url, exc)
            self.hide_admin_menus(document)
            return

        if not (payload.success and payload.user):
            logger.warning("User not logged in")
            self.hide_admin_menus(document)
            return

        self._user = payload.user
        self._loaded = True
        self.update_user_display(document)
        self.apply_role_based_menus(document)
        logger.info(
            "User menu initialized: emp_code=%s roles=%s is_admin=%s",
            self._user.emp_code, self._user.roles, self._user.is_admin,
        )

    # PUBLIC_INTERFACE
    def refresh(self, document: MenuDocument) -> None:
        """Drop the cached user and load it again."""
        self._loaded = False
        self._user = None
        self.init(document)

    # PUBLIC_INTERFACE
    def apply_role_based_menus(self, document: MenuDocument) -> None:
        """Show or hide each data-role element and the admin menu group for the cached user."""
        user = self._user
        if user is None:
            return

        for element in document.with_data_role():
            required = role_rules.parse_required_roles(element.data_role)
            if not required:
                continue
            if role_rules.has_role_access(required, user.roles, user.is_admin):
                element.show()
            else:
                element.hide()

        group = document.get_element_by_id(ADMIN_MENU_GROUP_ID)
        if group is not None:
            if role_rules.is_super_user(user.roles, user.is_admin):
                group.show()
                group.classes.discard("d-none")
            else:
                group.hide()

    # PUBLIC_INTERFACE
    def hide_admin_menus(self, document: MenuDocument) -> None:
        """Hide everything that mentions ADMIN or SUPER_USER, plus the admin menu group."""
        for element in document.with_data_role():
            data_role = element.data_role or ""
            if Role.ADMIN.value in data_role or Role.SUPER_USER.value in data_role:
                element.hide()

        group = document.get_element_by_id(ADMIN_MENU_GROUP_ID)
        if group is not None:
            group.hide()

    # PUBLIC_INTERFACE
    def update_user_display(self, document: MenuDocument) -> None:
        """Fill the header avatar, name, employee number, role badge and company badge."""
        user = self._user
        if user is None:
            return

        avatar = document.get_element_by_id(AVATAR_INITIAL_ID)
        if avatar is not None:
            avatar.text = (user.emp_code or "U")[:2].upper()

        display_name = document.get_element_by_id(DISPLAY_NAME_ID)
        if display_name is not None:
            display_name.text = user.emp_code or "Unknown User"

        employee_no = document.get_element_by_id(EMPLOYEE_NO_ID)
        if employee_no is not None:
            employee_no.text = f"ID: {user.user_id}" if user.user_id else ""

        role_badge = document.get_element_by_id(ROLE_BADGE_ID)
        if role_badge is not None:
            if user.is_admin:
                role_badge.text, role_badge.class_name = "Admin", "badge bg-danger"
            elif Role.SUPER_USER.value in user.roles:
                role_badge.text, role_badge.class_name = "Super User", "badge bg-warning text-dark"
            elif user.roles:
                role_badge.text, role_badge.class_name = user.roles[0], "badge bg-primary"
            else:
                role_badge.text, role_badge.class_name = user.user_role or "User", "badge bg-secondary"

        company_badge = document.get_element_by_id(COMPANY_BADGE_ID)
        if company_badge is not None:
            company = (user.company or "").upper()
            company_badge.text = company or "-"
            company_badge.class_name = COMPANY_BADGE_CLASSES.get(company, "badge bg-secondary")

    # PUBLIC_INTERFACE
    def has_role(self, role_code: str) -> bool:
        if self._user is None:
            return False
        if self._user.is_admin:
            return True
        return role_code in self._user.roles

    # PUBLIC_INTERFACE
    def is_admin(self) -> bool:
        if self._user is None:
            return False
        return role_rules.is_admin(self._user.roles, self._user.is_admin)

    # PUBLIC_INTERFACE
    def is_super_user(self) -> bool:
        return self.is_admin() or self.has_role(Role.SUPER_USER.value)

    # PUBLIC_INTERFACE
    def get_user(self) -> Optional[CurrentUser]:
        return self._user