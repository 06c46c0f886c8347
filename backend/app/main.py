"""SchoolHub API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SchoolHubError → failure envelopes
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Tables are created on startup only when DATABASE_AUTO_CREATE is set;
      there is no migration tool in this service
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import (
    academic_years, admissions, auth, branches, canteen, classes, communication,
    dashboard, fees, finance, guardians, health, library, marketplace, mobile_auth,
    roles, schools, sections, security, staff, students, subjects, transport, users,
)
from app.api.routes import settings as school_settings
from app.config import get_settings
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_auto_create:
        await manager.create_all()
        logger.info("Database tables ensured")
    logger.info("SchoolHub API started")
    yield
    await manager.dispose()
    logger.info("SchoolHub API shutting down")


app = FastAPI(title="SchoolHub API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(mobile_auth.router)
app.include_router(schools.router)
app.include_router(branches.router)
app.include_router(users.router)
app.include_router(roles.router)
app.include_router(academic_years.router)
app.include_router(classes.router)
app.include_router(sections.router)
app.include_router(subjects.router)
app.include_router(students.router)
app.include_router(guardians.router)
app.include_router(staff.router)
app.include_router(admissions.router)
app.include_router(fees.router)
app.include_router(finance.router)
app.include_router(library.router)
app.include_router(transport.router)
app.include_router(canteen.router)
app.include_router(marketplace.router)
app.include_router(communication.router)
app.include_router(security.router)
app.include_router(school_settings.router)
app.include_router(dashboard.router)
