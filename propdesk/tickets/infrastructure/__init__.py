"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the ticket lifecycle:
- Models: SQLAlchemy ORM models
- Repositories: data access layer
- Enforcer: before_flush hook keeping derived state consistent
"""

from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.infrastructure.database import CLOSED_STATUS_KEY
from propdesk.tickets.application.services import TicketLifecycleService
from propdesk.tickets.infrastructure.models import (
    TicketModel,
    ResolutionModel,
    AuditEntryModel,
    UserModel,
    StatusModel,
    CategoryModel,
    PropertyModel,
    ProviderModel,
)
from propdesk.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyAuditRepository,
    SQLAlchemyResolutionRepository,
    SQLAlchemyReferenceRepository,
    resolve_status_id,
)


def build_lifecycle_service(session: AsyncSession) -> TicketLifecycleService:
    """Wire the lifecycle service to a session and its repositories."""
    return TicketLifecycleService(
        session,
        SQLAlchemyTicketRepository(session),
        SQLAlchemyAuditRepository(session),
        SQLAlchemyResolutionRepository(session),
        SQLAlchemyReferenceRepository(session),
        closed_status_id=session.info.get(CLOSED_STATUS_KEY),
    )


__all__ = [
    "TicketModel",
    "ResolutionModel",
    "AuditEntryModel",
    "UserModel",
    "StatusModel",
    "CategoryModel",
    "PropertyModel",
    "ProviderModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyAuditRepository",
    "SQLAlchemyResolutionRepository",
    "SQLAlchemyReferenceRepository",
    "resolve_status_id",
    "build_lifecycle_service",
]
