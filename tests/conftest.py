import os

os.environ.setdefault("DB_HOST", "sqlite")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventmatch.base.config import settings
from eventmatch.base.database import Base, get_db, init_db
from eventmatch.main import app
from eventmatch.models.tables import (
    AvailabilitySlot,
    Event,
    Match,
    Meeting,
    Participant,
    Profile,
)

ORGANIZER_ID = "user-organizer"
EVENT_DAY = date(2024, 5, 1)


class Seeder:
    """Small row factory so each test states only the data it depends on."""

    def __init__(self, db):
        self.db = db

    def event(self, event_id="evt-1", organizer_id=ORGANIZER_ID, duration=30, break_minutes=5):
        event = Event(
            id=event_id,
            name="Demo Day",
            organizer_id=organizer_id,
            meeting_duration_minutes=duration,
            break_between_meetings=break_minutes,
        )
        self.db.add(event)
        self.db.commit()
        return event

    def participant(self, event, participant_id, user_id=None, full_name=None, status="approved", **fields):
        user_id = user_id or f"user-{participant_id}"
        profile_fields = {key: fields.pop(key, None) for key in ("title", "bio", "company_name")}
        if self.db.get(Profile, user_id) is None:
            self.db.add(Profile(id=user_id, full_name=full_name or participant_id.upper(), **profile_fields))
        participant = Participant(id=participant_id, event_id=event.id, user_id=user_id, status=status, **fields)
        self.db.add(participant)
        self.db.commit()
        return participant

    def match(self, event, a, b, score, status="accepted", match_id=None):
        match = Match(
            id=match_id or f"m-{a}-{b}",
            event_id=event.id,
            participant_a_id=a,
            participant_b_id=b,
            score=score,
            status=status,
        )
        self.db.add(match)
        self.db.commit()
        return match

    def slot(self, event, participant_id, start, end, day=EVENT_DAY, is_available=True):
        slot = AvailabilitySlot(
            event_id=event.id,
            participant_id=participant_id,
            date=day,
            start_time=start,
            end_time=end,
            is_available=is_available,
        )
        self.db.add(slot)
        self.db.commit()
        return slot

    def meeting(self, event, requester_id, recipient_id, status="pending", **fields):
        meeting = Meeting(
            event_id=event.id,
            requester_id=requester_id,
            recipient_id=recipient_id,
            status=status,
            duration_minutes=fields.pop("duration_minutes", 30),
            **fields,
        )
        self.db.add(meeting)
        self.db.commit()
        return meeting


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app, headers={"X-API-Key": settings.API_KEY})
    app.dependency_overrides.clear()


@pytest.fixture
def organizer_headers():
    return {"X-User-Id": ORGANIZER_ID}
