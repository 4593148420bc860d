# tests/test_sla_and_policy.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from propdesk.config import Priority
from propdesk.core import ValidationError
from propdesk.tickets.domain import EscalationPolicy, FieldChanges, SLACalculator, TicketDraft

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def ticket(created_hours_ago, due_in_hours, ticket_id=1):
    return SimpleNamespace(
        id=ticket_id,
        created_at=NOW - timedelta(hours=created_hours_ago),
        sla_due=NOW + timedelta(hours=due_in_hours),
    )


def test_age_hours_counts_whole_hours():
    t = SimpleNamespace(id=1, created_at=NOW - timedelta(hours=5, minutes=59), sla_due=NOW)
    assert SLACalculator.age_hours(t, NOW) == 5


def test_remaining_sla_positive_before_due():
    assert SLACalculator.remaining_sla_hours(ticket(1, 23), NOW) == 23


def test_remaining_sla_negative_one_hour_past_due():
    t = ticket(30, -1)
    assert SLACalculator.remaining_sla_hours(t, NOW) == -1
    assert SLACalculator.is_breached(t, NOW)


def test_remaining_sla_without_now_reads_the_clock():
    t = SimpleNamespace(
        id=1,
        created_at=datetime.now(timezone.utc) - timedelta(hours=3),
        sla_due=datetime.now(timezone.utc) - timedelta(hours=1, minutes=5),
    )
    assert SLACalculator.remaining_sla_hours(t) < 0
    assert SLACalculator.age_hours(t) == 3


def test_partial_hour_past_due_truncates_toward_zero_but_is_breached():
    t = SimpleNamespace(id=1, created_at=NOW - timedelta(hours=2), sla_due=NOW - timedelta(minutes=30))
    assert SLACalculator.remaining_sla_hours(t, NOW) == 0
    assert SLACalculator.is_breached(t, NOW)


def test_naive_timestamps_are_read_as_utc():
    t = SimpleNamespace(
        id=1,
        created_at=(NOW - timedelta(hours=4)).replace(tzinfo=None),
        sla_due=(NOW + timedelta(hours=8)).replace(tzinfo=None),
    )
    assert SLACalculator.age_hours(t, NOW) == 4
    assert SLACalculator.remaining_sla_hours(t, NOW) == 8


def test_snapshot_reads_every_metric_at_one_instant():
    snap = SLACalculator.snapshot(ticket(10, -2, ticket_id=42), NOW)
    assert snap.ticket_id == 42
    assert snap.observed_at == NOW
    assert snap.age_hours == 10
    assert snap.remaining_sla_hours == -2
    assert snap.is_breached is True


def test_snapshots_at_different_instants_differ():
    t = ticket(0, 10)
    first = SLACalculator.snapshot(t, NOW)
    later = SLACalculator.snapshot(t, NOW + timedelta(hours=3))
    assert first.remaining_sla_hours == 10
    assert later.remaining_sla_hours == 7


def test_due_from_policy_adds_resolution_hours():
    assert SLACalculator.due_from_policy(NOW, 24) == NOW + timedelta(hours=24)


@pytest.mark.parametrize("current, expected", [
    (Priority.LOW, Priority.MEDIUM),
    (Priority.MEDIUM, Priority.HIGH),
    (Priority.HIGH, Priority.URGENT),
    (Priority.URGENT, Priority.URGENT),
])
def test_escalation_ladder(current, expected):
    assert EscalationPolicy.next(current) == expected


def test_escalation_rejects_unknown_priority():
    with pytest.raises(ValidationError):
        EscalationPolicy.next("Critical")


def test_draft_rejects_due_at_creation_time():
    draft = TicketDraft(requester_id=1, category_id=1, description="x",
                        created_at=NOW, sla_due=NOW)
    with pytest.raises(ValidationError):
        draft.validate()


def test_draft_rejects_unknown_priority():
    with pytest.raises(ValidationError):
        TicketDraft(requester_id=1, category_id=1, description="x", priority="Critical")


def test_field_changes_keep_unmentioned_fields_out():
    changes = FieldChanges(provider_id=None, description="Still dripping")
    assert changes.as_dict() == {"provider_id": None, "description": "Still dripping"}


@pytest.mark.parametrize("field_name", ["priority", "description", "category_id", "sla_due"])
def test_field_changes_refuse_to_clear_required_fields(field_name):
    with pytest.raises(ValidationError):
        FieldChanges(**{field_name: None})
