"""
Role → permission catalog.

Two roles exist.  ``admin`` holds every permission; ``employee`` holds a
small read-mostly subset.  Anything not granted is denied, including
names that are not part of the catalog at all.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class Permission(str, Enum):
    # Dashboard
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_ANALYTICS = "view_analytics"

    # Employees
    VIEW_EMPLOYEES = "view_employees"
    CREATE_EMPLOYEE = "create_employee"
    EDIT_EMPLOYEE = "edit_employee"
    DELETE_EMPLOYEE = "delete_employee"
    VIEW_EMPLOYEE_DETAILS = "view_employee_details"

    # Departments
    VIEW_DEPARTMENTS = "view_departments"
    CREATE_DEPARTMENT = "create_department"
    EDIT_DEPARTMENT = "edit_department"
    DELETE_DEPARTMENT = "delete_department"

    # Attendance
    VIEW_ATTENDANCE = "view_attendance"
    MANAGE_ATTENDANCE = "manage_attendance"
    VIEW_ALL_ATTENDANCE = "view_all_attendance"

    # Leave
    VIEW_LEAVES = "view_leaves"
    APPROVE_LEAVE = "approve_leave"
    REJECT_LEAVE = "reject_leave"
    VIEW_ALL_LEAVES = "view_all_leaves"

    # Payroll
    VIEW_PAYROLL = "view_payroll"
    CREATE_PAYROLL = "create_payroll"
    EDIT_PAYROLL = "edit_payroll"
    DELETE_PAYROLL = "delete_payroll"

    # Performance
    VIEW_PERFORMANCE = "view_performance"
    CREATE_PERFORMANCE = "create_performance"
    EDIT_PERFORMANCE = "edit_performance"

    # Users
    VIEW_USERS = "view_users"
    CREATE_USER = "create_user"
    EDIT_USER = "edit_user"
    DELETE_USER = "delete_user"
    MANAGE_ROLES = "manage_roles"

    # System administration
    VIEW_SETTINGS = "view_settings"
    EDIT_SETTINGS = "edit_settings"
    VIEW_ACTIVITY_LOG = "view_activity_log"
    VIEW_AUDIT_TRAIL = "view_audit_trail"

    # Documents
    VIEW_DOCUMENTS = "view_documents"
    UPLOAD_DOCUMENT = "upload_document"
    DELETE_DOCUMENT = "delete_document"
    VIEW_ALL_DOCUMENTS = "view_all_documents"
    DELETE_OTHERS_DOCUMENTS = "delete_others_documents"

    # Announcements
    VIEW_ANNOUNCEMENTS = "view_announcements"
    CREATE_ANNOUNCEMENT = "create_announcement"
    EDIT_ANNOUNCEMENT = "edit_announcement"
    DELETE_ANNOUNCEMENT = "delete_announcement"

    # Holiday calendar
    VIEW_HOLIDAYS = "view_holidays"
    MANAGE_HOLIDAYS = "manage_holidays"

    # Notifications
    VIEW_NOTIFICATIONS = "view_notifications"
    MANAGE_NOTIFICATIONS = "manage_notifications"


_EMPLOYEE_GRANTS: frozenset[Permission] = frozenset(
    {
        Permission.VIEW_DASHBOARD,
        Permission.VIEW_EMPLOYEES,  # directory only
        Permission.VIEW_DEPARTMENTS,
        Permission.VIEW_ATTENDANCE,  # own records
        Permission.VIEW_LEAVES,  # own requests
        Permission.VIEW_DOCUMENTS,
        Permission.UPLOAD_DOCUMENT,
        Permission.VIEW_ANNOUNCEMENTS,
        Permission.VIEW_HOLIDAYS,
        Permission.VIEW_NOTIFICATIONS,
    }
)

_GRANTS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.EMPLOYEE: _EMPLOYEE_GRANTS,
}

_DISPLAY_NAMES = {
    Role.ADMIN: "Administrator",
    Role.EMPLOYEE: "Employee",
}


def _coerce_role(role: Role | str | None) -> Role:
    """Map any role value onto the catalog, falling back to ``employee``."""
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return Role.EMPLOYEE


def get_permissions(role: Role | str | None = None) -> dict[Permission, bool]:
    """Return the full ``{permission: granted}`` map for *role*.

    ``None`` and unrecognised roles get the ``employee`` map.
    """
    granted = _GRANTS[_coerce_role(role)]
    return {perm: perm in granted for perm in Permission}


def is_granted(role: Role | str | None, permission: Permission | str) -> bool:
    """Deny-by-default lookup of a single permission."""
    try:
        perm = Permission(permission)
    except ValueError:
        return False
    return get_permissions(role).get(perm, False)


def role_display_name(role: Role | str | None) -> str:
    """Human label for *role*; matching is case-insensitive, unknown roles read "User"."""
    if isinstance(role, str) and not isinstance(role, Role):
        role = role.lower()
    try:
        return _DISPLAY_NAMES[Role(role)]
    except ValueError:
        return "User"


def available_roles() -> dict[str, str]:
    """Assignable roles and their labels, as offered when creating or editing a user."""
    return {
        Role.ADMIN.value: "Administrator (Full Access)",
        Role.EMPLOYEE.value: "Employee (Limited Access)",
    }
