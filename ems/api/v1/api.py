"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter, Depends

from ems.api.v1.deps import csrf_protected
from ems.api.v1.endpoints import (announcements, attendance, auth,
                                  departments, employees, holidays, leaves,
                                  payroll, performance, profile, users)

api_router = APIRouter()

# Auth (login, logout, identity); login happens before a CSRF token exists
api_router.include_router(auth.router)

# Everything else is session-bound and CSRF-checked on unsafe methods
_protected = [Depends(csrf_protected)]
api_router.include_router(users.router, dependencies=_protected)
api_router.include_router(departments.router, dependencies=_protected)
api_router.include_router(employees.router, dependencies=_protected)
api_router.include_router(attendance.router, dependencies=_protected)
api_router.include_router(leaves.router, dependencies=_protected)
api_router.include_router(holidays.router, dependencies=_protected)
api_router.include_router(payroll.router, dependencies=_protected)
api_router.include_router(performance.router, dependencies=_protected)
api_router.include_router(announcements.router, dependencies=_protected)
api_router.include_router(profile.router, dependencies=_protected)
