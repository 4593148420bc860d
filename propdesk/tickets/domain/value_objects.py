"""
Ticket Value Objects
====================

Pure, stateless pieces of the lifecycle domain:

- SLACalculator: derived time metrics from a ticket's stored timestamps
- EscalationPolicy: the fixed priority ladder
- SLASnapshot: one self-consistent reading of both metrics

Nothing here touches the database or caches a result; every call reads the
clock again.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from propdesk.config import Priority, PRIORITY_LADDER
from propdesk.core import ValidationError

SECONDS_PER_HOUR = 3600


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as some drivers return them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _whole_hours(delta: timedelta) -> int:
    # Truncates toward zero, so 90 minutes overdue reads as -1
    return int(delta.total_seconds() / SECONDS_PER_HOUR)


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Each method accepts any object exposing ``created_at`` and ``sla_due``
    (ORM row, DTO or domain draft) and an optional ``now`` for callers that
    need several readings against the same instant.
    """

    @staticmethod
    def age_hours(ticket: Any, now: Optional[datetime] = None) -> int:
        """Whole hours elapsed since the ticket was created."""
        now = as_utc(now or utcnow())
        return _whole_hours(now - as_utc(ticket.created_at))

    @staticmethod
    def remaining_sla_hours(ticket: Any, now: Optional[datetime] = None) -> int:
        """Whole hours until the SLA is due; negative once breached."""
        now = as_utc(now or utcnow())
        return _whole_hours(as_utc(ticket.sla_due) - now)

    @staticmethod
    def is_breached(ticket: Any, now: Optional[datetime] = None) -> bool:
        now = as_utc(now or utcnow())
        return now > as_utc(ticket.sla_due)

    @staticmethod
    def due_from_policy(created_at: datetime, resolution_hours: int) -> datetime:
        """SLA due timestamp for a category's resolution target."""
        return as_utc(created_at) + timedelta(hours=resolution_hours)

    @classmethod
    def snapshot(cls, ticket: Any, now: Optional[datetime] = None) -> "SLASnapshot":
        """Read every metric against one instant."""
        now = as_utc(now or utcnow())
        return SLASnapshot(
            ticket_id=ticket.id,
            observed_at=now,
            sla_due=as_utc(ticket.sla_due),
            age_hours=cls.age_hours(ticket, now),
            remaining_sla_hours=cls.remaining_sla_hours(ticket, now),
            is_breached=cls.is_breached(ticket, now),
        )


class EscalationPolicy:
    """Maps a priority to its successor on the escalation ladder."""

    _NEXT = {
        Priority.LOW: Priority.MEDIUM,
        Priority.MEDIUM: Priority.HIGH,
        Priority.HIGH: Priority.URGENT,
        Priority.URGENT: Priority.URGENT,
    }

    @classmethod
    def next(cls, priority: str) -> str:
        try:
            return cls._NEXT[priority]
        except KeyError:
            raise ValidationError(
                f"Unknown priority '{priority}', expected one of {PRIORITY_LADDER}",
                {"priority": priority}
            ) from None


@dataclass(frozen=True)
class SLASnapshot:
    """
    Immutable reading of a ticket's SLA position at ``observed_at``.

    Two snapshots of the same ticket taken at different instants may differ.
    """
    ticket_id: int
    observed_at: datetime
    sla_due: datetime
    age_hours: int
    remaining_sla_hours: int
    is_breached: bool
