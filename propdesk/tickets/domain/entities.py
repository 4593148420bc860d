"""
Ticket Domain Entities
======================

Pure Python domain objects for the ticket lifecycle.

Following Domain-Driven Design principles, these entities contain
business rules and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from propdesk.config import Priority, PRIORITY_LADDER
from propdesk.core import ValidationError
from propdesk.tickets.domain.value_objects import as_utc, utcnow


@dataclass
class TicketDraft:
    """
    A ticket about to be created.

    ``sla_due`` and ``status_id`` may be left empty; the store fills them
    from the category's SLA policy and the default status before the draft
    is validated.
    """

    requester_id: int
    category_id: int
    description: str
    priority: str = Priority.MEDIUM
    property_id: Optional[int] = None
    provider_id: Optional[int] = None
    assignee_id: Optional[int] = None
    status_id: Optional[int] = None
    sla_due: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.priority not in PRIORITY_LADDER:
            raise ValidationError(
                f"priority must be one of {PRIORITY_LADDER}",
                {"priority": self.priority}
            )
        self.created_at = as_utc(self.created_at)
        if self.sla_due is not None:
            self.sla_due = as_utc(self.sla_due)

    def validate(self) -> None:
        """SLA due must fall strictly after creation."""
        if self.sla_due is None:
            raise ValidationError("sla_due is required")
        if self.sla_due <= self.created_at:
            raise ValidationError(
                "sla_due must be later than created_at",
                {
                    "created_at": self.created_at.isoformat(),
                    "sla_due": self.sla_due.isoformat(),
                }
            )


class _Unset:
    """Marker for a field the caller did not mention."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

# Optional references; None clears them
CLEARABLE_FIELDS = {"property_id", "provider_id"}


@dataclass(frozen=True)
class FieldChanges:
    """
    Direct field updates to an existing ticket.

    Fields left at ``UNSET`` are not touched. ``None`` clears an optional
    reference (property, provider) and is rejected for required fields. The
    lifecycle operations own status and assignee, so they are not part of
    this set.
    """

    priority: Optional[str] = UNSET
    description: Optional[str] = UNSET
    property_id: Optional[int] = UNSET
    category_id: Optional[int] = UNSET
    provider_id: Optional[int] = UNSET
    sla_due: Optional[datetime] = UNSET

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value is None and name not in CLEARABLE_FIELDS:
                raise ValidationError(f"{name} cannot be cleared", {"field": name})
        if self.priority is not UNSET and self.priority not in PRIORITY_LADDER:
            raise ValidationError(
                f"priority must be one of {PRIORITY_LADDER}",
                {"priority": self.priority}
            )

    def as_dict(self) -> dict:
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET
        }
