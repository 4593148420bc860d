"""
Invariant Enforcer
==================

Reactive rules hooked into SQLAlchemy's ``before_flush`` session event.

Because the hook is attached to the Session class, it runs for every flush
of every session, whichever code staged the change: a lifecycle operation, a
direct field update or a Resolution inserted by hand. Effects are staged into
the same flush and therefore commit or roll back with the change that caused
them.

Rules:
- a Ticket whose priority changed gets a "priority changed" audit entry,
  attributed to its assignee (or the no-actor sentinel)
- a new Resolution forces its Ticket into the Closed status and always
  touches the ticket row, so the insert is version-checked like any other
  ticket mutation
- bulk UPDATE / INSERT statements against tickets or resolutions are
  rejected; they bypass the flush
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import ORMExecuteState, Session

from propdesk.config import NO_ACTOR
from propdesk.core import ConfigurationError, NotFoundError, ValidationError
from propdesk.infrastructure.database import CLOSED_STATUS_KEY
from propdesk.shared.infrastructure.logging import get_logger
from propdesk.tickets.domain.events import AuditMessages
from propdesk.tickets.infrastructure.models import (
    AuditEntryModel,
    ResolutionModel,
    TicketModel,
)

logger = get_logger(__name__)


def _priority_change(ticket: TicketModel) -> Optional[tuple]:
    history = inspect(ticket).attrs.priority.history
    if not history.added or not history.deleted:
        return None
    old, new = history.deleted[0], history.added[0]
    if old == new:
        return None
    return old, new


def apply_priority_reaction(session: Session) -> int:
    """Stage one audit entry per ticket whose priority changed in this flush."""
    staged = 0
    for obj in list(session.dirty):
        if not isinstance(obj, TicketModel):
            continue
        change = _priority_change(obj)
        if change is None:
            continue
        old, new = change
        session.add(AuditEntryModel(
            ticket_id=obj.id,
            actor_id=obj.assignee_id if obj.assignee_id is not None else NO_ACTOR,
            description=AuditMessages.priority_changed(old, new),
        ))
        staged += 1
        logger.info(
            "Priority change audited",
            extra={"ticket_id": obj.id, "old_priority": old, "new_priority": new},
        )
    return staged


def _ticket_for(session: Session, resolution: ResolutionModel) -> Optional[TicketModel]:
    state = inspect(resolution)
    if state.dict.get("ticket") is not None:
        return state.dict["ticket"]
    with session.no_autoflush:
        return session.get(TicketModel, resolution.ticket_id)


def apply_resolution_reaction(session: Session) -> int:
    """Force Closed on the ticket of every Resolution inserted in this flush."""
    new_resolutions = [obj for obj in session.new if isinstance(obj, ResolutionModel)]
    if not new_resolutions:
        return 0

    closed_status_id = session.info.get(CLOSED_STATUS_KEY)
    if closed_status_id is None:
        # Resolutions can only exist on Closed tickets
        raise ConfigurationError(
            "Closed status is not configured; cannot record a resolution"
        )

    forced = 0
    for resolution in new_resolutions:
        ticket = _ticket_for(session, resolution)
        if ticket is None:
            raise NotFoundError("Ticket", resolution.ticket_id)
        # Always touched, so the insert goes through the version check
        ticket.updated_at = datetime.now(timezone.utc)
        if ticket.status_id == closed_status_id:
            continue
        ticket.status_id = closed_status_id
        forced += 1
        logger.info(
            "Resolution closed ticket",
            extra={"ticket_id": ticket.id, "status_id": closed_status_id},
        )
    return forced


def enforce_invariants(session: Session, flush_context: Any, instances: Any) -> None:
    # Resolution first: closing touches the ticket but never its priority
    apply_resolution_reaction(session)
    apply_priority_reaction(session)


GUARDED_TABLES = frozenset({TicketModel.__tablename__, ResolutionModel.__tablename__})


def reject_bulk_writes(orm_execute_state: ORMExecuteState) -> None:
    """
    Refuse statement-level UPDATE / INSERT on tickets and resolutions.

    Such statements never reach ``before_flush``; ticket and resolution rows
    are only written through the unit of work.
    """
    if not (orm_execute_state.is_update or orm_execute_state.is_insert):
        return
    table = getattr(orm_execute_state.statement, "table", None)
    table_name = getattr(table, "name", None)
    if table_name in GUARDED_TABLES:
        logger.warning("Bulk write rejected", extra={"table": table_name})
        raise ValidationError(
            f"Bulk writes to '{table_name}' are not allowed; load and modify the rows instead",
            {"table": table_name}
        )


def install(session_class: type = Session) -> None:
    """Attach the hooks once; safe to call repeatedly."""
    if not event.contains(session_class, "before_flush", enforce_invariants):
        event.listen(session_class, "before_flush", enforce_invariants)
    if not event.contains(session_class, "do_orm_execute", reject_bulk_writes):
        event.listen(session_class, "do_orm_execute", reject_bulk_writes)


install()
