# eventmatch/models/tables.py

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import relationship, validates

from eventmatch.base.database import Base
from eventmatch.utils.time_utils import normalize_time


def _uuid() -> str:
    return str(uuid.uuid4())


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False, default="")
    organizer_id = Column(String, nullable=False, index=True)
    meeting_duration_minutes = Column(Integer, nullable=True)  # unset -> DEFAULT_MEETING_DURATION_MINUTES
    break_between_meetings = Column(Integer, nullable=True)  # unset -> DEFAULT_BREAK_MINUTES


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)  # auth user id
    full_name = Column(String, nullable=True)
    title = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    company_name = Column(String, nullable=True)


class Participant(Base):
    __tablename__ = "participants"

    id = Column(String, primary_key=True, default=_uuid)
    event_id = Column(String, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")  # pending, approved, rejected
    intent = Column(String, nullable=True)
    intents = Column(JSON, nullable=True)
    looking_for = Column(Text, nullable=True)
    offering = Column(Text, nullable=True)
    intent_vector = Column(JSON, nullable=True)
    intent_confidence = Column(Integer, nullable=True)

    profile = relationship("Profile", lazy="joined")


class Match(Base):
    __tablename__ = "matches"

    id = Column(String, primary_key=True, default=_uuid)
    event_id = Column(String, ForeignKey("events.id"), nullable=False)
    participant_a_id = Column(String, ForeignKey("participants.id"), nullable=False)
    participant_b_id = Column(String, ForeignKey("participants.id"), nullable=False)
    score = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False, default="pending")  # pending, accepted, dismissed, saved

    __table_args__ = (Index("ix_matches_event_status", "event_id", "status"),)


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"

    id = Column(String, primary_key=True, default=_uuid)
    event_id = Column(String, ForeignKey("events.id"), nullable=False)
    participant_id = Column(String, ForeignKey("participants.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # zero-padded "HH:MM", event-local
    end_time = Column(String(5), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_availability_event_available", "event_id", "is_available"),)

    @validates("start_time", "end_time")
    def _normalize_time(self, key, value):
        # padded strings sort in clock order
        return normalize_time(value)


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(String, primary_key=True, default=_uuid)
    event_id = Column(String, ForeignKey("events.id"), nullable=False)
    requester_id = Column(String, ForeignKey("participants.id"), nullable=False)
    recipient_id = Column(String, ForeignKey("participants.id"), nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending, accepted, declined, cancelled, completed
    start_time = Column(DateTime, nullable=True)  # naive event-local wall clock
    end_time = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    meeting_type = Column(String, nullable=False, default="in-person")  # in-person, virtual, scheduled
    location = Column(String, nullable=True)
    agenda_note = Column(Text, nullable=True)
    decline_reason = Column(Text, nullable=True)
    requester_rating = Column(Integer, nullable=True)
    recipient_rating = Column(Integer, nullable=True)
    requester_feedback = Column(Text, nullable=True)
    recipient_feedback = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (Index("ix_meetings_event_status", "event_id", "status"),)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    event_id = Column(String, nullable=True)
    type = Column(String, nullable=False)  # meeting_request, meeting_reminder
    title = Column(String, nullable=False)
    body = Column(Text, nullable=True)
    link = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class ParticipantActivity(Base):
    __tablename__ = "participant_activity"

    id = Column(String, primary_key=True, default=_uuid)
    participant_id = Column(String, nullable=False, index=True)
    event_id = Column(String, nullable=False)
    action_type = Column(String, nullable=False)  # meeting_accepted, meeting_rated
    target_participant_id = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
