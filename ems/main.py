"""
EMS — Application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `api/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import or_, select

# Ensure all models are imported so metadata.create_all can see them
from ems.models.announcement import Announcement  # noqa: F401
from ems.models.employee import Attendance, Department, Employee  # noqa: F401
from ems.models.holiday import Holiday  # noqa: F401
from ems.models.leave import LeaveRequest  # noqa: F401
from ems.models.payroll import PayrollRecord  # noqa: F401
from ems.models.performance import PerformanceReview  # noqa: F401
from ems.models.user import User
from ems.models.user_session import UserSession  # noqa: F401
from ems.api import pages
from ems.api.v1.api import api_router
from ems.api.v1.endpoints.auth import limiter
from ems.core.config import settings
from ems.core.exceptions import register_exception_handlers
from ems.core.permissions import Role
from ems.core.security import get_password_hash
from ems.db.base import Base
from ems.db.session import async_session_factory, engine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_admin() -> None:
    """Create the first admin account unless one with that username/email exists."""
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(
                or_(
                    User.username == settings.FIRST_ADMIN_USERNAME,
                    User.email == settings.FIRST_ADMIN_EMAIL,
                )
            )
        )
        if result.first() is None:
            admin = User(
                username=settings.FIRST_ADMIN_USERNAME,
                email=settings.FIRST_ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                role=Role.ADMIN.value,
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_USERNAME,
            )


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_admin()

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Employee management with role-based access control",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Login throttling (shared by the JSON and the form login)
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Browser pages: /, /login, /logout, /dashboard
    application.include_router(pages.router)

    return application


app = create_app()
