"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the ticket lifecycle.

Owned by the engine: tickets, resolutions, audit_entries.
Reference data (users, statuses, categories, properties, providers) is
produced elsewhere and only mapped here so ids can be checked.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import String, DateTime, Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propdesk.infrastructure.database import Base
from propdesk.config import Priority


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Reference data (read-only) ==========

class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class StatusModel(Base):
    """Ticket status reference values; "Closed" is the terminal one."""
    __tablename__ = "statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class CategoryModel(Base):
    """Ticket category with its SLA policy, in hours."""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    response_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    escalation_hours: Mapped[int] = mapped_column(Integer, nullable=False)


class PropertyModel(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class ProviderModel(Base):
    """External contractor a ticket can be handed to."""
    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


# ========== Lifecycle records ==========

class TicketModel(Base):
    """
    Database model for a trouble ticket.

    ``version`` is the optimistic-lock counter: every UPDATE is issued with
    ``WHERE version = <loaded>`` and a stale row raises StaleDataError.
    """
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    property_id: Mapped[Optional[int]] = mapped_column(ForeignKey("properties.id"), nullable=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Old value is always loaded so a priority change can be audited
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Priority.MEDIUM, index=True, active_history=True
    )
    status_id: Mapped[int] = mapped_column(ForeignKey("statuses.id"), nullable=False, index=True)
    assignee_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    provider_id: Mapped[Optional[int]] = mapped_column(ForeignKey("providers.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    sla_due: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    resolutions: Mapped[List["ResolutionModel"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="ResolutionModel.id",
    )
    audit_entries: Mapped[List["AuditEntryModel"]] = relationship(
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="AuditEntryModel.id",
    )

    __mapper_args__ = {"version_id_col": version}


class ResolutionModel(Base):
    """A resolution note; its existence implies the ticket is Closed."""
    __tablename__ = "resolutions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    resolved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    ticket: Mapped["TicketModel"] = relationship(back_populates="resolutions")


class AuditEntryModel(Base):
    """
    Append-only audit record.

    ``actor_id`` is a plain integer rather than a foreign key: 0 is the
    "no actor" sentinel used when a change has no assignee context.
    """
    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    ticket: Mapped["TicketModel"] = relationship(back_populates="audit_entries")
