"""
Ticket Application Services
===========================

The lifecycle engine: orchestrates create / assign / update-status /
escalate / close against the ticket store, the escalation policy and the
audit trail.

Following SOLID principles:
- Single Responsibility: the service sequences a mutation; the store
  validates fields and the flush hook applies reactive invariants
- Dependency Inversion: depend on repository abstractions, not SQLAlchemy

Every mutating method is one unit of work. It commits once on success and
rolls back everything (store write, audit entry, reactions) on failure.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

from sqlalchemy.orm.exc import StaleDataError

from propdesk.config import settings
from propdesk.core import (
    ConcurrencyConflict,
    ConfigurationError,
    NotFoundError,
)
from propdesk.shared.infrastructure.logging import get_logger, log_latency
from propdesk.tickets.domain import (
    AuditMessages,
    EscalationPolicy,
    FieldChanges,
    SLACalculator,
    SLASnapshot,
    TicketDraft,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for the ticket store."""

    @abstractmethod
    async def get_by_id(self, ticket_id: int) -> Optional[Any]:
        """Get ticket by id."""

    @abstractmethod
    async def refresh_by_id(self, ticket_id: int) -> Optional[Any]:
        """Get ticket by id, bypassing any cached copy."""

    @abstractmethod
    async def create(self, draft: TicketDraft) -> Any:
        """Create new ticket."""

    @abstractmethod
    async def mutate(self, ticket: Any, changes: dict) -> Any:
        """Apply field changes to a loaded ticket."""

    @abstractmethod
    async def delete(self, ticket: Any) -> None:
        """Delete ticket and everything it owns."""

    @abstractmethod
    async def list(
        self,
        filters: dict,
        limit: int = 100,
        offset: int = 0
    ) -> List[Any]:
        """List tickets with filters."""


class IAuditRepository(ABC):
    """Interface for the append-only audit trail."""

    @abstractmethod
    async def append(self, ticket_id: int, actor_id: int, description: str) -> Any:
        """Append one entry."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> List[Any]:
        """Entries for a ticket, oldest first."""


class IResolutionRepository(ABC):
    """Interface for resolution records."""

    @abstractmethod
    async def add(self, ticket_id: int, description: str) -> Any:
        """Insert a resolution."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> List[Any]:
        """Resolutions for a ticket, oldest first."""


class IReferenceRepository(ABC):
    """Interface for read-only reference data."""

    @abstractmethod
    async def exists(self, resource_type: str, resource_id: Any) -> bool:
        """Check a reference id exists."""

    @abstractmethod
    async def get_category(self, category_id: int) -> Optional[Any]:
        """Get a category with its SLA policy."""

    @abstractmethod
    async def status_id_by_name(self, name: str) -> Optional[int]:
        """Resolve a status id by exact name."""


# ========== Application Services ==========

class TicketLifecycleService:
    """
    Service for every ticket state change.

    Coordinates between domain rules and data access. The Closed status id is
    resolved once at startup and injected; ``None`` means it was missing, and
    only the operations that need it fail.
    """

    def __init__(
        self,
        session: Any,
        ticket_repository: ITicketRepository,
        audit_repository: IAuditRepository,
        resolution_repository: IResolutionRepository,
        reference_repository: IReferenceRepository,
        closed_status_id: Optional[int] = None,
    ):
        self._session = session
        self._tickets = ticket_repository
        self._audit = audit_repository
        self._resolutions = resolution_repository
        self._references = reference_repository
        self._closed_status_id = closed_status_id

    # ----- unit of work -----

    @asynccontextmanager
    async def transaction(self, ticket_id: Any = None) -> AsyncIterator[None]:
        """
        Commit once on success; roll back on any failure.

        A stale optimistic-lock version surfaces as ConcurrencyConflict.
        """
        try:
            yield
            await self._session.commit()
        except StaleDataError:
            await self._session.rollback()
            logger.warning("Concurrent modification rejected", extra={"ticket_id": ticket_id})
            raise ConcurrencyConflict(ticket_id) from None
        except Exception:
            await self._session.rollback()
            raise

    # ----- guards -----

    async def _load_ticket(self, ticket_id: int) -> Any:
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    async def _require_reference(self, resource_type: str, resource_id: Any) -> None:
        if not await self._references.exists(resource_type, resource_id):
            raise NotFoundError(resource_type, resource_id)

    def _require_closed_status(self) -> int:
        if self._closed_status_id is None:
            logger.error(
                "Closed status missing",
                extra={"status_name": settings.closed_status_name}
            )
            raise ConfigurationError(
                f"Status '{settings.closed_status_name}' is not configured",
                {"status_name": settings.closed_status_name}
            )
        return self._closed_status_id

    # ----- mutations -----

    async def create(self, draft: TicketDraft) -> Any:
        """
        Create a ticket.

        Missing SLA due is derived from the category's resolution hours;
        missing status falls back to the default status row. No audit entry
        is written for creation.
        """
        async with self.transaction():
            with log_latency(logger, "ticket.create", requester_id=draft.requester_id):
                await self._require_reference("User", draft.requester_id)
                category = await self._references.get_category(draft.category_id)
                if category is None:
                    raise NotFoundError("Category", draft.category_id)
                if draft.property_id is not None:
                    await self._require_reference("Property", draft.property_id)
                if draft.provider_id is not None:
                    await self._require_reference("Provider", draft.provider_id)
                if draft.assignee_id is not None:
                    await self._require_reference("User", draft.assignee_id)

                if draft.status_id is None:
                    draft.status_id = await self._references.status_id_by_name(
                        settings.default_status_name
                    )
                    if draft.status_id is None:
                        raise ConfigurationError(
                            f"Status '{settings.default_status_name}' is not configured",
                            {"status_name": settings.default_status_name}
                        )
                else:
                    await self._require_reference("Status", draft.status_id)

                if draft.sla_due is None:
                    draft.sla_due = SLACalculator.due_from_policy(
                        draft.created_at, category.resolution_hours
                    )

                ticket = await self._tickets.create(draft)
        return ticket

    async def update_status(self, ticket_id: int, new_status: int, actor: int) -> Any:
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.update_status", ticket_id=ticket_id, status_id=new_status):
                ticket = await self._load_ticket(ticket_id)
                await self._require_reference("Status", new_status)
                await self._tickets.mutate(ticket, {"status_id": new_status})
                await self._audit.append(
                    ticket.id, actor, AuditMessages.status_updated(new_status, actor)
                )
        return ticket

    async def assign(self, ticket_id: int, assignee_id: int, actor: int) -> Any:
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.assign", ticket_id=ticket_id, assignee_id=assignee_id):
                ticket = await self._load_ticket(ticket_id)
                await self._require_reference("User", assignee_id)
                await self._tickets.mutate(ticket, {"assignee_id": assignee_id})
                await self._audit.append(ticket.id, actor, AuditMessages.assigned(assignee_id))
        return ticket

    async def escalate(self, ticket_id: int, actor: int) -> Any:
        """
        Move priority one step up the ladder.

        At Urgent the priority stays put but the escalation entry is still
        written ("from Urgent to Urgent").
        """
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.escalate", ticket_id=ticket_id):
                ticket = await self._load_ticket(ticket_id)
                old = ticket.priority
                new = EscalationPolicy.next(old)
                await self._tickets.mutate(ticket, {"priority": new})
                await self._audit.append(ticket.id, actor, AuditMessages.escalated(old, new))
        return ticket

    async def close(self, ticket_id: int, resolution_text: str, actor: int) -> Any:
        """
        Close a ticket and log its resolution.

        Closing an already closed ticket adds another resolution and audit
        entry; the status itself does not move.
        """
        closed_status_id = self._require_closed_status()
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.close", ticket_id=ticket_id):
                ticket = await self._load_ticket(ticket_id)
                await self._tickets.mutate(ticket, {"status_id": closed_status_id})
                await self._resolutions.add(ticket.id, resolution_text)
                await self._audit.append(ticket.id, actor, AuditMessages.closed())
        return ticket

    async def update_fields(self, ticket_id: int, changes: FieldChanges, actor: int) -> Any:
        """
        Direct field update.

        Writes no audit entry of its own; a priority change made here is
        still audited by the flush hook. A ``None`` property or provider
        clears that reference.
        """
        values = changes.as_dict()
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.update_fields", ticket_id=ticket_id, actor=actor,
                             fields=sorted(values)):
                ticket = await self._load_ticket(ticket_id)
                if "category_id" in values:
                    await self._require_reference("Category", values["category_id"])
                if values.get("property_id") is not None:
                    await self._require_reference("Property", values["property_id"])
                if values.get("provider_id") is not None:
                    await self._require_reference("Provider", values["provider_id"])
                await self._tickets.mutate(ticket, values)
        return ticket

    async def add_resolution(self, ticket_id: int, description: str) -> Any:
        """Insert a resolution outside of ``close``; the ticket still ends up Closed."""
        self._require_closed_status()
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.add_resolution", ticket_id=ticket_id):
                ticket = await self._load_ticket(ticket_id)
                resolution = await self._resolutions.add(ticket.id, description)
        return resolution

    async def delete(self, ticket_id: int) -> None:
        async with self.transaction(ticket_id):
            with log_latency(logger, "ticket.delete", ticket_id=ticket_id):
                ticket = await self._load_ticket(ticket_id)
                await self._tickets.delete(ticket)

    # ----- reads (no locking, no side effects) -----

    async def get_ticket(self, ticket_id: int) -> Any:
        ticket = await self._tickets.refresh_by_id(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    async def list_tickets(
        self,
        filters: Optional[dict] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Any]:
        return await self._tickets.list(filters or {}, limit=limit, offset=offset)

    async def audit_trail(self, ticket_id: int) -> List[Any]:
        await self._load_ticket(ticket_id)
        return await self._audit.list_for_ticket(ticket_id)

    async def resolutions(self, ticket_id: int) -> List[Any]:
        await self._load_ticket(ticket_id)
        return await self._resolutions.list_for_ticket(ticket_id)

    async def sla_snapshot(self, ticket_id: int) -> SLASnapshot:
        ticket = await self.get_ticket(ticket_id)
        return SLACalculator.snapshot(ticket)
