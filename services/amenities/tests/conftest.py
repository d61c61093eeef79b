"""
Fixtures partagées : base SQLite en mémoire, publisher factice,
acteurs (syndic / résidents) et espace "Salão" de référence.
"""
import os

# avant tout import de api.py / publisher.py
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EVENTS_ENABLED", "0")

from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401
from models import Actor, AreaCreate, Role
from service import AmenityService
from timeslots import LOCAL_TZ


class StubPublisher:
    def __init__(self):
        self.events = []

    def __call__(self, event_type: str, payload: dict):
        self.events.append((event_type, payload))

    def types(self):
        return [t for t, _ in self.events]


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def publisher():
    return StubPublisher()


@pytest.fixture
def service(session, publisher):
    return AmenityService(session, publisher)


@pytest.fixture
def manager():
    return Actor(id="syndic-1", role=Role.MANAGER)


@pytest.fixture
def resident():
    return Actor(id="res-101")


@pytest.fixture
def neighbour():
    return Actor(id="res-202")


# Deux jours avant la date des scénarios
@pytest.fixture
def now():
    return datetime(2025, 5, 30, 10, 0, tzinfo=LOCAL_TZ)


@pytest.fixture
def salao(service, manager):
    return service.create_area(
        AreaCreate(name="Salão", open_time="08:00", close_time="23:00", requires_approval=True, max_duration_hours=4),
        manager,
    )


@pytest.fixture
def grill(service, manager):
    return service.create_area(
        AreaCreate(name="Churrasqueira", open_time="08:00", close_time="22:00", max_duration_hours=4),
        manager,
    )
