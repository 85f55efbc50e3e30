from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

import gamerental.db.crud as crud
from gamerental import config
from gamerental.utils.errors import AuthorizationError

Role = Literal["customer", "employee", "manager"]


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - login: current logged-in user (Users.login), None before login
      - role: "customer" | "employee" | "manager" | None if not determined yet
    """

    login: Optional[str] = None
    role: Optional[Role] = None

    def start_session(self, login: str, role: Role) -> None:
        self.login = login
        self.role = role

    def end_session(self) -> None:
        """Forget the logged-in user. Called on logout and quit."""
        self.login = None
        self.role = None

    @property
    def is_staff(self) -> bool:
        return self.role in config.STAFF_ROLES

    @property
    def is_manager(self) -> bool:
        return self.role == "manager"

    async def require_role(self, *roles: Role) -> None:
        """
        Re-check the user's role in the database before a mutation and raise
        AuthorizationError unless it is one of `roles`. The cached role is
        refreshed, so a demotion made by a manager takes effect immediately.
        """
        current = await crud.get_user_role(self.login) if self.login else None
        if current is not None:
            self.role = current
        if current not in roles:
            raise AuthorizationError(self.login, roles)

    def can_view_order_of(self, owner: Optional[str]) -> bool:
        """Customers only see their own orders; staff see everyone's."""
        return owner is not None and (self.is_staff or owner == self.login)
