# tests/conftest.py
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./propdesk-test.db")
os.environ.setdefault("ENVIRONMENT", "development")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from propdesk.infrastructure.database import build_engine, build_session_maker, create_tables
from propdesk.tickets.domain import TicketDraft
from propdesk.tickets.infrastructure import (
    AuditEntryModel,
    CategoryModel,
    PropertyModel,
    ProviderModel,
    ResolutionModel,
    StatusModel,
    TicketModel,
    UserModel,
    build_lifecycle_service,
)

OPEN = 1
IN_PROGRESS = 2
ESCALATED = 3
CLOSED = 4
ON_HOLD = 9

PLUMBING = 1
ELECTRICAL = 2


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'propdesk.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def seeded(engine):
    """Reference rows the lifecycle engine reads but never writes."""
    async with build_session_maker(engine)() as session:
        session.add_all([
            UserModel(id=1, name="Dana Requester"),
            UserModel(id=2, name="Sam Dispatcher"),
            UserModel(id=5, name="Ari Technician"),
            UserModel(id=6, name="Lee Technician"),
            UserModel(id=7, name="Kim Supervisor"),
            StatusModel(id=OPEN, name="Open"),
            StatusModel(id=IN_PROGRESS, name="In Progress"),
            StatusModel(id=ESCALATED, name="Escalated"),
            StatusModel(id=CLOSED, name="Closed"),
            StatusModel(id=ON_HOLD, name="On Hold"),
            CategoryModel(id=PLUMBING, name="Plumbing", response_hours=2,
                          resolution_hours=24, escalation_hours=8),
            CategoryModel(id=ELECTRICAL, name="Electrical", response_hours=1,
                          resolution_hours=12, escalation_hours=4),
            PropertyModel(id=1, name="Maple Court", address="12 Maple Ct"),
            ProviderModel(id=1, name="QuickFix Plumbing"),
        ])
        await session.commit()


@pytest.fixture
def session_maker(engine, seeded):
    return build_session_maker(engine, closed_status_id=CLOSED)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def service(session):
    return build_lifecycle_service(session)


@pytest.fixture
def make_draft():
    def _make(**overrides):
        data = {
            "requester_id": 1,
            "category_id": PLUMBING,
            "description": "Kitchen sink leaking under the cabinet",
            "property_id": 1,
        }
        data.update(overrides)
        return TicketDraft(**data)
    return _make


@pytest.fixture
async def open_ticket(service, make_draft):
    """Id of a fresh Medium-priority Open ticket."""
    ticket = await service.create(make_draft())
    return ticket.id


@pytest.fixture
def counts(session_maker):
    """Row counts read through a fresh session (what a reader would see)."""
    async def _counts(ticket_id=None):
        async with session_maker() as session:
            result = {}
            for name, model in (
                ("tickets", TicketModel),
                ("resolutions", ResolutionModel),
                ("audit", AuditEntryModel),
            ):
                stmt = select(func.count()).select_from(model)
                if ticket_id is not None:
                    column = model.id if model is TicketModel else model.ticket_id
                    stmt = stmt.where(column == ticket_id)
                result[name] = (await session.execute(stmt)).scalar_one()
            return result
    return _counts


@pytest.fixture
def audit_descriptions(session_maker):
    async def _read(ticket_id):
        async with session_maker() as session:
            stmt = (
                select(AuditEntryModel.description)
                .where(AuditEntryModel.ticket_id == ticket_id)
                .order_by(AuditEntryModel.id)
            )
            return list((await session.execute(stmt)).scalars().all())
    return _read


def hours_from_now(hours):
    return datetime.now(timezone.utc) + timedelta(hours=hours)
