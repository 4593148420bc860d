"""
Ticket Application DTOs
=======================

Pydantic models for the HTTP layer: request validation on the way in,
ORM-to-JSON serialization on the way out.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from propdesk.tickets.domain import FieldChanges, TicketDraft


PriorityStr = Literal["Low", "Medium", "High", "Urgent"]


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for opening a ticket."""
    requester_id: int = Field(..., description="User who reported the issue")
    category_id: int = Field(..., description="Ticket category (drives the SLA)")
    description: str = Field(..., min_length=1, description="What is wrong")
    priority: PriorityStr = Field(default="Medium", description="Initial priority")
    property_id: Optional[int] = Field(None, description="Affected property")
    provider_id: Optional[int] = Field(None, description="External provider")
    assignee_id: Optional[int] = Field(None, description="Initial assignee")
    status_id: Optional[int] = Field(None, description="Initial status (default: Open)")
    created_at: Optional[datetime] = Field(None, description="Creation time (default: now)")
    sla_due: Optional[datetime] = Field(
        None, description="SLA due time (default: created_at + category resolution hours)"
    )

    def to_draft(self) -> TicketDraft:
        data = self.model_dump(exclude_none=True)
        return TicketDraft(**data)


class TicketUpdateRequest(BaseModel):
    """Direct field update; omitted fields stay, null clears property or provider."""
    actor_id: int = Field(..., description="User making the change")
    priority: Optional[PriorityStr] = None
    description: Optional[str] = Field(None, min_length=1)
    property_id: Optional[int] = None
    category_id: Optional[int] = None
    provider_id: Optional[int] = None
    sla_due: Optional[datetime] = None

    def to_changes(self) -> FieldChanges:
        # Only fields present in the body
        return FieldChanges(**self.model_dump(exclude={"actor_id"}, exclude_unset=True))


class ActorRequest(BaseModel):
    actor_id: int = Field(..., description="User performing the operation")


class AssignRequest(ActorRequest):
    assignee_id: int = Field(..., description="User receiving the ticket")


class StatusUpdateRequest(ActorRequest):
    status_id: int = Field(..., description="Target status id")


class CloseRequest(ActorRequest):
    resolution: str = Field(..., min_length=1, description="How the issue was resolved")


class ResolutionCreateRequest(BaseModel):
    description: str = Field(..., min_length=1)


# ========== Response DTOs ==========

class SLAStatusResponse(BaseModel):
    """Live SLA reading; recomputed on every request."""
    observed_at: datetime
    sla_due: datetime
    age_hours: int = Field(..., description="Whole hours since creation")
    remaining_sla_hours: int = Field(..., description="Whole hours until due; negative when breached")
    is_breached: bool


class TicketResponse(BaseModel):
    id: int
    requester_id: int
    property_id: Optional[int] = None
    category_id: int
    description: str
    priority: PriorityStr
    status_id: int
    assignee_id: Optional[int] = None
    provider_id: Optional[int] = None
    created_at: datetime
    sla_due: datetime
    updated_at: datetime
    version: int

    model_config = ConfigDict(from_attributes=True)


class TicketDetailResponse(TicketResponse):
    sla: SLAStatusResponse


class AuditEntryResponse(BaseModel):
    id: int
    ticket_id: int
    actor_id: int
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ResolutionResponse(BaseModel):
    id: int
    ticket_id: int
    description: str
    resolved_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    count: int
    limit: int
    offset: int
