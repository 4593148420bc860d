"""
PropDesk - Main Application
===========================

Trouble-ticket lifecycle service for a property-management operation.

Modules:
- Tickets: creation, assignment, escalation, closure, SLA timing and the
  audit trail that pairs every state change

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Lifecycle service and DTOs
- Domain: Drafts, SLA calculator, escalation policy, audit descriptions
- Infrastructure: Database, repositories, invariant hook
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from propdesk.config import settings
from propdesk.core import ApplicationException, ConfigurationError

# Infrastructure
from propdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
    set_closed_status,
)
from propdesk.tickets.infrastructure import resolve_status_id

# Module Routers
from propdesk.tickets.interfaces import tickets_router

# Middleware & Logging
from propdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from propdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


async def resolve_closed_status(app: FastAPI) -> None:
    """
    Resolve the terminal status once and publish it to every session.

    A missing row does not stop the service: ticket reads and most
    mutations still work, and close / resolution requests fail with a
    configuration error until the row exists and the service restarts.
    """
    try:
        async with get_session_context() as session:
            closed_status_id = await resolve_status_id(session, settings.closed_status_name)
    except ConfigurationError as e:
        logger.error("Closed status not resolved - closing tickets is disabled", extra={
            "status_name": settings.closed_status_name,
            "error": e.message,
        })
        closed_status_id = None

    set_closed_status(closed_status_id)
    app.state.closed_status_id = closed_status_id


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create tables (development only)
    4. Resolve the Closed status

    SHUTDOWN:
    1. Close database connections
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting PropDesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()
    app.state.settings = settings

    if settings.environment == "development":
        logger.info("Creating database tables")
        await create_tables()

    await resolve_closed_status(app)

    logger.info("PropDesk started successfully")

    yield  # Application runs here

    logger.info("Shutting down PropDesk")
    await close_database()
    logger.info("PropDesk shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="PropDesk Ticket Lifecycle API",
    description="""
    ## Property-management trouble tickets

    Lifecycle operations (assign, status, escalate, close) each commit as one
    transaction together with their audit entry. Priority changes and
    resolutions are audited / enforced on every write path.

    **Escalation ladder:** Low → Medium → High → Urgent → Urgent

    **Error codes:** 404 unknown id, 409 concurrent modification,
    422 invalid SLA due time, 503 missing status configuration
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# LoggingMiddleware is added first so CorrelationIDMiddleware wraps it
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(tickets_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports whether the terminal status was resolved at startup.
    """
    closed_status_id = getattr(request.app.state, "closed_status_id", None)
    return {
        "status": "healthy" if closed_status_id is not None else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "closed_status": "resolved" if closed_status_id is not None else "missing",
        }
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "PropDesk",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "propdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
