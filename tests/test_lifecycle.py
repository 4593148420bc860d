# tests/test_lifecycle.py
from datetime import timedelta

import pytest

from conftest import CLOSED, ESCALATED, IN_PROGRESS, ON_HOLD, OPEN, hours_from_now
from propdesk.config import Priority
from propdesk.core import ConfigurationError, NotFoundError, ValidationError
from propdesk.infrastructure.database import build_session_maker
from propdesk.tickets.domain import FieldChanges
from propdesk.tickets.domain.value_objects import as_utc
from propdesk.tickets.infrastructure import StatusModel, build_lifecycle_service


# ---------- create ----------

async def test_create_defaults_status_and_derives_sla_from_category(service, make_draft, counts):
    draft = make_draft()
    ticket = await service.create(draft)

    assert ticket.id is not None
    assert ticket.status_id == OPEN
    assert ticket.priority == Priority.MEDIUM
    assert as_utc(ticket.sla_due) - as_utc(ticket.created_at) == timedelta(hours=24)
    assert ticket.version == 1
    # creation is not audited
    assert (await counts(ticket.id))["audit"] == 0


async def test_create_keeps_explicit_sla_due_and_status(service, make_draft):
    due = hours_from_now(4)
    ticket = await service.create(make_draft(sla_due=due, status_id=IN_PROGRESS, priority="High"))

    assert as_utc(ticket.sla_due) == due
    assert ticket.status_id == IN_PROGRESS
    assert ticket.priority == "High"


@pytest.mark.parametrize("offset_hours", [0, -1])
async def test_create_rejects_sla_due_not_after_creation(service, make_draft, counts, offset_hours):
    draft = make_draft()
    draft.sla_due = draft.created_at + timedelta(hours=offset_hours)

    with pytest.raises(ValidationError):
        await service.create(draft)

    assert (await counts())["tickets"] == 0


async def test_create_unknown_category_is_not_found(service, make_draft, counts):
    with pytest.raises(NotFoundError):
        await service.create(make_draft(category_id=99))
    assert (await counts())["tickets"] == 0


async def test_create_unknown_requester_is_not_found(service, make_draft):
    with pytest.raises(NotFoundError):
        await service.create(make_draft(requester_id=404))


async def test_create_without_default_status_row_is_configuration_error(
    session_maker, service, make_draft, counts
):
    async with session_maker() as s:
        open_status = await s.get(StatusModel, OPEN)
        open_status.name = "New"
        await s.commit()

    with pytest.raises(ConfigurationError):
        await service.create(make_draft())
    assert (await counts())["tickets"] == 0


# ---------- update_status ----------

async def test_update_status_audits_raw_status_id(service, make_draft, audit_descriptions):
    for _ in range(3):
        ticket = await service.create(make_draft())
    assert ticket.id == 3

    updated = await service.update_status(3, ON_HOLD, actor=2)

    assert updated.status_id == ON_HOLD
    assert await audit_descriptions(3) == ["Status updated to 9 by user 2"]


async def test_update_status_unknown_status_leaves_ticket_untouched(service, open_ticket, counts):
    with pytest.raises(NotFoundError):
        await service.update_status(open_ticket, 77, actor=2)

    ticket = await service.get_ticket(open_ticket)
    assert ticket.status_id == OPEN
    assert (await counts(open_ticket))["audit"] == 0


async def test_operations_on_missing_ticket_are_not_found(service):
    with pytest.raises(NotFoundError):
        await service.update_status(1234, OPEN, actor=2)
    with pytest.raises(NotFoundError):
        await service.escalate(1234, actor=2)
    with pytest.raises(NotFoundError):
        await service.close(1234, "n/a", actor=2)


# ---------- assign ----------

async def test_assign_sets_assignee_and_audits(service, open_ticket, audit_descriptions):
    ticket = await service.assign(open_ticket, 5, actor=2)

    assert ticket.assignee_id == 5
    assert await audit_descriptions(open_ticket) == ["Ticket assigned to user 5"]


async def test_assign_to_unknown_user_is_not_found(service, open_ticket, counts):
    with pytest.raises(NotFoundError):
        await service.assign(open_ticket, 404, actor=2)
    assert (await counts(open_ticket))["audit"] == 0


# ---------- escalate ----------

async def test_escalate_moves_one_step_and_audits_both_entries(service, open_ticket, audit_descriptions):
    ticket = await service.escalate(open_ticket, actor=2)

    assert ticket.priority == Priority.HIGH
    assert await audit_descriptions(open_ticket) == [
        "Ticket priority changed from Medium to High",
        "Ticket escalated from Medium to High",
    ]


async def test_escalate_at_urgent_still_writes_entry(service, make_draft, audit_descriptions):
    ticket = await service.create(make_draft(priority=Priority.URGENT))

    ticket = await service.escalate(ticket.id, actor=2)

    assert ticket.priority == Priority.URGENT
    assert await audit_descriptions(ticket.id) == ["Ticket escalated from Urgent to Urgent"]


async def test_escalate_through_whole_ladder(service, make_draft, audit_descriptions):
    ticket = await service.create(make_draft(priority=Priority.LOW))
    tid = ticket.id

    for _ in range(4):
        ticket = await service.escalate(tid, actor=7)

    assert ticket.priority == Priority.URGENT
    escalations = [d for d in await audit_descriptions(tid) if d.startswith("Ticket escalated")]
    assert escalations == [
        "Ticket escalated from Low to Medium",
        "Ticket escalated from Medium to High",
        "Ticket escalated from High to Urgent",
        "Ticket escalated from Urgent to Urgent",
    ]


# ---------- close ----------

async def test_close_open_ticket(service, open_ticket, counts, audit_descriptions):
    before = await counts(open_ticket)

    ticket = await service.close(open_ticket, "fixed leak", actor=7)

    after = await counts(open_ticket)
    assert ticket.status_id == CLOSED
    assert after["resolutions"] - before["resolutions"] == 1
    assert after["audit"] - before["audit"] == 1
    assert await audit_descriptions(open_ticket) == ["Ticket closed and resolution logged."]

    resolutions = await service.resolutions(open_ticket)
    assert [r.description for r in resolutions] == ["fixed leak"]


async def test_reclose_adds_history_but_keeps_status(service, open_ticket, counts, audit_descriptions):
    await service.close(open_ticket, "fixed leak", actor=7)
    ticket = await service.close(open_ticket, "replaced trap as well", actor=7)

    assert ticket.status_id == CLOSED
    assert (await counts(open_ticket))["resolutions"] == 2
    assert await audit_descriptions(open_ticket) == [
        "Ticket closed and resolution logged.",
        "Ticket closed and resolution logged.",
    ]


async def test_close_without_closed_status_is_configuration_error(
    engine, seeded, open_ticket, counts
):
    async with build_session_maker(engine, closed_status_id=None)() as session:
        unconfigured = build_lifecycle_service(session)
        with pytest.raises(ConfigurationError):
            await unconfigured.close(open_ticket, "fixed leak", actor=7)

        ticket = await unconfigured.get_ticket(open_ticket)
        assert ticket.status_id == OPEN

    assert await counts(open_ticket) == {"tickets": 1, "resolutions": 0, "audit": 0}


# ---------- direct field updates ----------

async def test_update_fields_changes_description_without_audit(service, open_ticket, audit_descriptions):
    ticket = await service.update_fields(
        open_ticket, FieldChanges(description="Leak now reaching the floor"), actor=2
    )

    assert ticket.description == "Leak now reaching the floor"
    assert await audit_descriptions(open_ticket) == []


async def test_update_fields_rejects_sla_due_before_creation(service, open_ticket, counts):
    ticket = await service.get_ticket(open_ticket)
    too_early = as_utc(ticket.created_at) - timedelta(minutes=1)

    with pytest.raises(ValidationError):
        await service.update_fields(open_ticket, FieldChanges(sla_due=too_early), actor=2)

    ticket = await service.get_ticket(open_ticket)
    assert as_utc(ticket.sla_due) > as_utc(ticket.created_at)


async def test_update_fields_unknown_provider_is_not_found(service, open_ticket):
    with pytest.raises(NotFoundError):
        await service.update_fields(open_ticket, FieldChanges(provider_id=55), actor=2)


# ---------- reads ----------

async def test_list_tickets_filters_by_status_and_priority(service, make_draft):
    low = await service.create(make_draft(priority=Priority.LOW))
    high = await service.create(make_draft(priority=Priority.HIGH))
    await service.update_status(high.id, ESCALATED, actor=2)

    escalated = await service.list_tickets({"status_id": ESCALATED})
    assert [t.id for t in escalated] == [high.id]

    lows = await service.list_tickets({"priority": Priority.LOW})
    assert [t.id for t in lows] == [low.id]

    assert len(await service.list_tickets({}, limit=1)) == 1


async def test_sla_snapshot_reports_breach(service, make_draft):
    draft = make_draft()
    draft.created_at = draft.created_at - timedelta(hours=10)
    draft.sla_due = hours_from_now(-1) - timedelta(minutes=1)
    ticket = await service.create(draft)

    snapshot = await service.sla_snapshot(ticket.id)

    assert snapshot.remaining_sla_hours < 0
    assert snapshot.is_breached
    assert snapshot.age_hours == 10


# ---------- delete ----------

async def test_delete_cascades_to_resolutions_and_audit(service, open_ticket, counts):
    await service.assign(open_ticket, 5, actor=2)
    await service.escalate(open_ticket, actor=2)
    await service.close(open_ticket, "fixed leak", actor=5)
    before = await counts(open_ticket)
    assert before["resolutions"] == 1
    assert before["audit"] == 4

    await service.delete(open_ticket)

    assert await counts(open_ticket) == {"tickets": 0, "resolutions": 0, "audit": 0}
    assert await counts() == {"tickets": 0, "resolutions": 0, "audit": 0}
    with pytest.raises(NotFoundError):
        await service.get_ticket(open_ticket)


async def test_update_fields_clears_provider_and_keeps_the_rest(service, make_draft):
    ticket = await service.create(make_draft(provider_id=1))

    ticket = await service.update_fields(ticket.id, FieldChanges(provider_id=None), actor=2)

    assert ticket.provider_id is None
    assert ticket.property_id == 1
    assert ticket.priority == Priority.MEDIUM
