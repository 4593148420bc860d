"""
Ticket Domain Layer
===================

Contains:
- Entities: TicketDraft, FieldChanges
- Value Objects & pure services: SLACalculator, EscalationPolicy, SLASnapshot
- Audit descriptions: AuditMessages

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from propdesk.tickets.domain.entities import TicketDraft, FieldChanges
from propdesk.tickets.domain.events import AuditMessages
from propdesk.tickets.domain.value_objects import (
    SLACalculator,
    EscalationPolicy,
    SLASnapshot,
)

__all__ = [
    # Entities
    "TicketDraft",
    "FieldChanges",
    # Value Objects & Services
    "SLACalculator",
    "EscalationPolicy",
    "SLASnapshot",
    "AuditMessages",
]
