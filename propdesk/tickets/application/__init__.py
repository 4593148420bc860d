"""
Ticket Application Layer
========================

Contains:
- Services: the lifecycle engine and its repository interfaces
- DTOs: request/response models for the HTTP layer

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from propdesk.tickets.application.dto import (
    TicketCreateRequest,
    TicketUpdateRequest,
    ActorRequest,
    AssignRequest,
    StatusUpdateRequest,
    CloseRequest,
    ResolutionCreateRequest,
    SLAStatusResponse,
    TicketResponse,
    TicketDetailResponse,
    TicketListResponse,
    AuditEntryResponse,
    ResolutionResponse,
)
from propdesk.tickets.application.services import (
    TicketLifecycleService,
    ITicketRepository,
    IAuditRepository,
    IResolutionRepository,
    IReferenceRepository,
)

__all__ = [
    # DTOs
    "TicketCreateRequest",
    "TicketUpdateRequest",
    "ActorRequest",
    "AssignRequest",
    "StatusUpdateRequest",
    "CloseRequest",
    "ResolutionCreateRequest",
    "SLAStatusResponse",
    "TicketResponse",
    "TicketDetailResponse",
    "TicketListResponse",
    "AuditEntryResponse",
    "ResolutionResponse",
    # Services
    "TicketLifecycleService",
    # Repository Interfaces
    "ITicketRepository",
    "IAuditRepository",
    "IResolutionRepository",
    "IReferenceRepository",
]
