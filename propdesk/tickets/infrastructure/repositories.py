"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of the repository interfaces using SQLAlchemy.

Repositories stage and flush; they never commit. The unit of work belongs to
the lifecycle service, so a store write, its audit entry and any enforcer
reaction always share one transaction.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.core import ConfigurationError, ValidationError
from propdesk.tickets.application.services import (
    IAuditRepository,
    IReferenceRepository,
    IResolutionRepository,
    ITicketRepository,
)
from propdesk.tickets.domain import TicketDraft
from propdesk.tickets.domain.value_objects import as_utc
from propdesk.tickets.infrastructure import enforcer  # noqa: F401  (installs the flush hook)
from propdesk.tickets.infrastructure.models import (
    AuditEntryModel,
    CategoryModel,
    PropertyModel,
    ProviderModel,
    ResolutionModel,
    StatusModel,
    TicketModel,
    UserModel,
)

MUTABLE_FIELDS = {
    "priority",
    "description",
    "property_id",
    "category_id",
    "provider_id",
    "sla_due",
    "status_id",
    "assignee_id",
}


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of the ticket store.

    Enforces field-level invariants at write time.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: int) -> Optional[TicketModel]:
        """Get ticket by id, reusing the session's loaded copy if any."""
        return await self._session.get(TicketModel, ticket_id)

    async def refresh_by_id(self, ticket_id: int) -> Optional[TicketModel]:
        """Get ticket by id, re-reading the row even if already loaded."""
        return await self._session.get(TicketModel, ticket_id, populate_existing=True)

    async def create(self, draft: TicketDraft) -> TicketModel:
        """Create new ticket; nothing is staged if the draft is invalid."""
        draft.validate()

        model = TicketModel(
            requester_id=draft.requester_id,
            property_id=draft.property_id,
            category_id=draft.category_id,
            description=draft.description,
            priority=draft.priority,
            status_id=draft.status_id,
            assignee_id=draft.assignee_id,
            provider_id=draft.provider_id,
            created_at=draft.created_at,
            sla_due=draft.sla_due,
            updated_at=draft.created_at,
        )

        self._session.add(model)
        await self._session.flush()

        return model

    async def mutate(self, ticket: TicketModel, changes: dict) -> TicketModel:
        """Apply field changes and refresh ``updated_at``."""
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be changed: {sorted(unknown)}")

        if changes.get("sla_due") is not None:
            due = as_utc(changes["sla_due"])
            if due <= as_utc(ticket.created_at):
                raise ValidationError(
                    "sla_due must be later than created_at",
                    {"ticket_id": ticket.id, "sla_due": due.isoformat()}
                )
            changes = {**changes, "sla_due": due}

        for field, value in changes.items():
            setattr(ticket, field, value)
        # Always touched, so every mutation bumps the row version
        ticket.updated_at = datetime.now(timezone.utc)

        await self._session.flush()

        return ticket

    async def delete(self, ticket: TicketModel) -> None:
        """Delete ticket; resolutions and audit entries cascade."""
        await self._session.delete(ticket)
        await self._session.flush()

    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[TicketModel]:
        """List tickets with filters, newest first."""
        stmt = select(TicketModel)

        if filters.get("status_id") is not None:
            stmt = stmt.where(TicketModel.status_id == filters["status_id"])
        if filters.get("priority") is not None:
            stmt = stmt.where(TicketModel.priority == filters["priority"])
        if filters.get("assignee_id") is not None:
            stmt = stmt.where(TicketModel.assignee_id == filters["assignee_id"])
        if filters.get("category_id") is not None:
            stmt = stmt.where(TicketModel.category_id == filters["category_id"])

        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemyAuditRepository(IAuditRepository):
    """Append-only audit trail; there is deliberately no update or delete."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def append(self, ticket_id: int, actor_id: int, description: str) -> AuditEntryModel:
        entry = AuditEntryModel(
            ticket_id=ticket_id,
            actor_id=actor_id,
            description=description,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_for_ticket(self, ticket_id: int) -> List[AuditEntryModel]:
        stmt = (
            select(AuditEntryModel)
            .where(AuditEntryModel.ticket_id == ticket_id)
            .order_by(AuditEntryModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemyResolutionRepository(IResolutionRepository):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, ticket_id: int, description: str) -> ResolutionModel:
        """Insert a resolution; the flush hook closes the ticket."""
        resolution = ResolutionModel(ticket_id=ticket_id, description=description)
        self._session.add(resolution)
        await self._session.flush()
        return resolution

    async def list_for_ticket(self, ticket_id: int) -> List[ResolutionModel]:
        stmt = (
            select(ResolutionModel)
            .where(ResolutionModel.ticket_id == ticket_id)
            .order_by(ResolutionModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemyReferenceRepository(IReferenceRepository):
    """Read-only lookups against reference data owned by other systems."""

    MODELS = {
        "User": UserModel,
        "Status": StatusModel,
        "Category": CategoryModel,
        "Property": PropertyModel,
        "Provider": ProviderModel,
    }

    def __init__(self, session: AsyncSession):
        self._session = session

    async def exists(self, resource_type: str, resource_id: Any) -> bool:
        model = self.MODELS[resource_type]
        stmt = select(model.id).where(model.id == resource_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_category(self, category_id: int) -> Optional[CategoryModel]:
        return await self._session.get(CategoryModel, category_id)

    async def status_id_by_name(self, name: str) -> Optional[int]:
        stmt = select(StatusModel.id).where(StatusModel.name == name)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


async def resolve_status_id(session: AsyncSession, name: str) -> int:
    """
    Resolve a status row by exact name.

    Raises:
        ConfigurationError: if no status carries that name
    """
    status_id = await SQLAlchemyReferenceRepository(session).status_id_by_name(name)
    if status_id is None:
        raise ConfigurationError(
            f"Status '{name}' is not configured",
            {"status_name": name}
        )
    return status_id
