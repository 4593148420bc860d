"""
Audit Event Descriptions
========================

The literal descriptions written to the audit trail. Notification dispatch
and audit viewers parse these strings, so the wording, casing and trailing
punctuation are fixed.
"""

from typing import Any


class AuditMessages:
    """Builders for every audit entry description the engine writes."""

    STATUS_UPDATED = "Status updated to {status} by user {actor}"
    ASSIGNED = "Ticket assigned to user {assignee_id}"
    ESCALATED = "Ticket escalated from {old} to {new}"
    CLOSED = "Ticket closed and resolution logged."
    PRIORITY_CHANGED = "Ticket priority changed from {old} to {new}"

    @classmethod
    def status_updated(cls, status: Any, actor: Any) -> str:
        # Raw status id, never its display name
        return cls.STATUS_UPDATED.format(status=status, actor=actor)

    @classmethod
    def assigned(cls, assignee_id: Any) -> str:
        return cls.ASSIGNED.format(assignee_id=assignee_id)

    @classmethod
    def escalated(cls, old: str, new: str) -> str:
        return cls.ESCALATED.format(old=old, new=new)

    @classmethod
    def closed(cls) -> str:
        return cls.CLOSED

    @classmethod
    def priority_changed(cls, old: str, new: str) -> str:
        return cls.PRIORITY_CHANGED.format(old=old, new=new)
