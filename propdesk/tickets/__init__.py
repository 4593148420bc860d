"""
Ticket Lifecycle Module
=======================

Bounded context for property-management trouble tickets.

Responsibilities:
- Create tickets with an SLA due time derived from their category
- Assign, re-status, escalate and close tickets
- Keep an append-only audit trail paired with every state change
- React to priority changes and resolutions on any write path
- Report live SLA age and remaining time
"""

__version__ = "1.0.0"
