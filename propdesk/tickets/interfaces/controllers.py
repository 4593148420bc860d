"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to the lifecycle service. Domain
exceptions are not caught here; the application-level handlers in
``propdesk.shared.api.middleware`` turn them into HTTP responses.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from propdesk.infrastructure.database import get_session
from propdesk.tickets.application import (
    ActorRequest,
    AssignRequest,
    AuditEntryResponse,
    CloseRequest,
    ResolutionCreateRequest,
    ResolutionResponse,
    SLAStatusResponse,
    StatusUpdateRequest,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketLifecycleService,
    TicketListResponse,
    TicketResponse,
    TicketUpdateRequest,
)
from propdesk.tickets.application.dto import PriorityStr
from propdesk.tickets.domain import SLACalculator
from propdesk.tickets.infrastructure import build_lifecycle_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Dependencies ==========

async def get_lifecycle_service(
    session: AsyncSession = Depends(get_session)
) -> TicketLifecycleService:
    """Get lifecycle service instance bound to the request session."""
    return build_lifecycle_service(session)


def _detail(ticket) -> TicketDetailResponse:
    snapshot = SLACalculator.snapshot(ticket)
    return TicketDetailResponse(
        **TicketResponse.model_validate(ticket).model_dump(),
        sla=SLAStatusResponse(
            observed_at=snapshot.observed_at,
            sla_due=snapshot.sla_due,
            age_hours=snapshot.age_hours,
            remaining_sla_hours=snapshot.remaining_sla_hours,
            is_breached=snapshot.is_breached,
        ),
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
)
async def create_ticket(
    request: TicketCreateRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.create(request.to_draft())
    return _detail(ticket)


@router.get("", response_model=TicketListResponse, summary="List tickets")
async def list_tickets(
    status_id: Optional[int] = Query(None, description="Filter by status id"),
    priority: Optional[PriorityStr] = Query(None, description="Filter by priority"),
    assignee_id: Optional[int] = Query(None, description="Filter by assignee"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    tickets = await service.list_tickets(
        {
            "status_id": status_id,
            "priority": priority,
            "assignee_id": assignee_id,
            "category_id": category_id,
        },
        limit=limit,
        offset=offset,
    )
    return TicketListResponse(
        tickets=[TicketResponse.model_validate(t) for t in tickets],
        count=len(tickets),
        limit=limit,
        offset=offset,
    )


@router.get("/{ticket_id}", response_model=TicketDetailResponse, summary="Get ticket with live SLA")
async def get_ticket(
    ticket_id: int,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    return _detail(await service.get_ticket(ticket_id))


@router.patch("/{ticket_id}", response_model=TicketDetailResponse, summary="Update ticket fields")
async def update_ticket(
    ticket_id: int,
    request: TicketUpdateRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.update_fields(ticket_id, request.to_changes(), request.actor_id)
    return _detail(ticket)


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete ticket with its resolutions and audit trail",
)
async def delete_ticket(
    ticket_id: int,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    await service.delete(ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{ticket_id}/assign", response_model=TicketDetailResponse, summary="Assign ticket")
async def assign_ticket(
    ticket_id: int,
    request: AssignRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.assign(ticket_id, request.assignee_id, request.actor_id)
    return _detail(ticket)


@router.post("/{ticket_id}/status", response_model=TicketDetailResponse, summary="Change status")
async def update_status(
    ticket_id: int,
    request: StatusUpdateRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.update_status(ticket_id, request.status_id, request.actor_id)
    return _detail(ticket)


@router.post("/{ticket_id}/escalate", response_model=TicketDetailResponse, summary="Escalate priority")
async def escalate_ticket(
    ticket_id: int,
    request: ActorRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.escalate(ticket_id, request.actor_id)
    return _detail(ticket)


@router.post("/{ticket_id}/close", response_model=TicketDetailResponse, summary="Close with resolution")
async def close_ticket(
    ticket_id: int,
    request: CloseRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    ticket = await service.close(ticket_id, request.resolution, request.actor_id)
    return _detail(ticket)


@router.post(
    "/{ticket_id}/resolutions",
    response_model=ResolutionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a resolution (closes the ticket)",
)
async def add_resolution(
    ticket_id: int,
    request: ResolutionCreateRequest,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    return await service.add_resolution(ticket_id, request.description)


@router.get(
    "/{ticket_id}/resolutions",
    response_model=list[ResolutionResponse],
    summary="List resolutions",
)
async def list_resolutions(
    ticket_id: int,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    return await service.resolutions(ticket_id)


@router.get(
    "/{ticket_id}/audit",
    response_model=list[AuditEntryResponse],
    summary="Audit trail, oldest first",
)
async def audit_trail(
    ticket_id: int,
    service: TicketLifecycleService = Depends(get_lifecycle_service),
):
    return await service.audit_trail(ticket_id)
