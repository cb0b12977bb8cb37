"""
Authorization guard — request-scoped access decisions.

An ``AuthContext`` wraps the (possibly absent) session snapshot of one
request.  Queries (``has_permission``, ``has_role`` ...) return booleans and
are used to show or hide affordances; ``require_*`` methods raise and end
the request through the handlers in ``ems.core.exceptions``.
"""

from __future__ import annotations

from ems.core.exceptions import LoginRequired, PermissionDenied
from ems.core.permissions import (Permission, Role, get_permissions,
                                  is_granted)
from ems.core.session_store import CurrentUser


class AuthContext:
    def __init__(self, user: CurrentUser | None = None) -> None:
        self._user = user

    @property
    def is_logged_in(self) -> bool:
        return self._user is not None and bool(self._user.user_id) and bool(self._user.username)

    def get_current_user(self) -> CurrentUser | None:
        return self._user if self.is_logged_in else None

    def has_role(self, role: Role | str) -> bool:
        if not self.is_logged_in:
            return False
        return self._user.role == getattr(role, "value", role)

    def get_permissions(self) -> dict[Permission, bool]:
        return get_permissions(self._user.role if self.is_logged_in else None)

    def has_permission(self, permission: Permission | str) -> bool:
        if not self.is_logged_in:
            return False
        return is_granted(self._user.role, permission)

    def require_login(self) -> CurrentUser:
        if not self.is_logged_in:
            raise LoginRequired()
        return self._user

    def require_permission(self, permission: Permission | str) -> CurrentUser:
        user = self.require_login()
        if not self.has_permission(permission):
            raise PermissionDenied(getattr(permission, "value", permission))
        return user

    def granted(self) -> list[str]:
        """Names of every permission the session holds (empty when anonymous)."""
        if not self.is_logged_in:
            return []
        return sorted(p.value for p, ok in self.get_permissions().items() if ok)
