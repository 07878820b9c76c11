# eventmatch/services/auto_scheduler_service.py

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventmatch.base.config import settings
from eventmatch.base.metrics import (
    auto_schedule_duration,
    auto_schedule_runs,
    matches_unscheduled,
    meetings_auto_scheduled,
)
from eventmatch.base.models import AutoScheduleResponse
from eventmatch.base.security import is_event_organizer
from eventmatch.models.tables import Event, Match, Meeting
from eventmatch.services.availability_service import (
    AvailabilityIndex,
    build_availability_index,
    load_available_slots,
)
from eventmatch.services.booking_ledger import BookingLedger
from eventmatch.utils.time_utils import DayInterval, build_start_time

logger = logging.getLogger("auto_scheduler")

OPEN_MEETING_STATUSES = ("pending", "accepted")

NO_ACCEPTED_MATCHES = "No accepted matches to schedule"
ALL_MATCHES_COVERED = "All matches already have meetings"
NO_AVAILABILITY = "No availability slots found"


@dataclass(frozen=True)
class CandidateMatch:
    match_id: str
    participant_a_id: str
    participant_b_id: str
    score: float


@dataclass(frozen=True)
class ScheduledMeeting:
    match_id: str
    event_id: str
    requester_id: str
    recipient_id: str
    day: date
    start_minute: int
    duration_minutes: int
    meeting_type: str = "scheduled"
    status: str = "accepted"

    @property
    def start_time(self) -> datetime:
        return build_start_time(self.day, self.start_minute)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    def to_row(self) -> Meeting:
        return Meeting(
            event_id=self.event_id,
            requester_id=self.requester_id,
            recipient_id=self.recipient_id,
            start_time=self.start_time,
            duration_minutes=self.duration_minutes,
            meeting_type=self.meeting_type,
            status=self.status,
        )


@dataclass
class ScheduleOutcome:
    scheduled: List[ScheduledMeeting] = field(default_factory=list)
    unmatched: List[CandidateMatch] = field(default_factory=list)
    ledger: BookingLedger = field(default_factory=BookingLedger)


def pair_key(participant_a_id: str, participant_b_id: str) -> Tuple[str, str]:
    """Unordered pair identity."""
    first, second = sorted((participant_a_id, participant_b_id))
    return first, second


def resolve_meeting_settings(event: Event) -> Tuple[int, int]:
    """(duration, break) in minutes; unset or invalid values fall back to the configured defaults."""
    duration = event.meeting_duration_minutes
    if not duration or duration <= 0:
        duration = settings.DEFAULT_MEETING_DURATION_MINUTES
    break_minutes = event.break_between_meetings
    if break_minutes is None or break_minutes < 0:
        break_minutes = settings.DEFAULT_BREAK_MINUTES
    return duration, break_minutes


def find_slot(
    candidate: CandidateMatch,
    a_slots: Sequence[DayInterval],
    b_slots: Sequence[DayInterval],
    duration: int,
    break_minutes: int,
    ledger: BookingLedger,
) -> Optional[Tuple[date, int]]:
    """
    First-fit search over same-date availability pairs (A outer, B inner).
    Candidate starts step by duration + break from the overlap start, so a free
    slot that is not aligned to that stride is not found.
    """
    stride = duration + break_minutes
    for a_slot in a_slots:
        for b_slot in b_slots:
            if a_slot.day != b_slot.day:
                continue

            overlap_start = max(a_slot.start, b_slot.start)
            overlap_end = min(a_slot.end, b_slot.end)

            cursor = overlap_start
            while cursor + duration <= overlap_end:
                booked_until = cursor + duration + break_minutes
                if not (
                    ledger.is_booked(candidate.participant_a_id, a_slot.day, cursor, booked_until)
                    or ledger.is_booked(candidate.participant_b_id, a_slot.day, cursor, booked_until)
                ):
                    return a_slot.day, cursor
                cursor += stride
    return None


def schedule_matches(
    candidates: Sequence[CandidateMatch],
    availability: AvailabilityIndex,
    duration: int,
    break_minutes: int,
    event_id: str,
    ledger: Optional[BookingLedger] = None,
) -> ScheduleOutcome:
    """Greedy assignment in the given (priority) order. Never raises for an unplaceable match."""
    if duration <= 0:
        raise ValueError("Meeting duration must be positive")
    if break_minutes < 0:
        raise ValueError("Break between meetings cannot be negative")

    outcome = ScheduleOutcome(ledger=ledger or BookingLedger())

    for candidate in candidates:
        a_slots = availability.get(candidate.participant_a_id, [])
        b_slots = availability.get(candidate.participant_b_id, [])

        slot = find_slot(candidate, a_slots, b_slots, duration, break_minutes, outcome.ledger)
        if slot is None:
            outcome.unmatched.append(candidate)
            logger.debug(f"[AutoSchedule] No slot for match {candidate.match_id} (score={candidate.score})")
            continue

        day, cursor = slot
        booked_until = cursor + duration + break_minutes
        outcome.ledger.book(candidate.participant_a_id, day, cursor, booked_until)
        outcome.ledger.book(candidate.participant_b_id, day, cursor, booked_until)
        outcome.scheduled.append(ScheduledMeeting(
            match_id=candidate.match_id,
            event_id=event_id,
            requester_id=candidate.participant_a_id,
            recipient_id=candidate.participant_b_id,
            day=day,
            start_minute=cursor,
            duration_minutes=duration,
        ))

    return outcome


class EventLockRegistry:
    """
    Process-local lock per event so two runs for one event never interleave.
    Entries live only while some run holds or waits on them.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire_entry(self, event_id: str) -> threading.Lock:
        with self._guard:
            self._holders[event_id] = self._holders.get(event_id, 0) + 1
            return self._locks.setdefault(event_id, threading.Lock())

    def _release_entry(self, event_id: str):
        with self._guard:
            self._holders[event_id] -= 1
            if not self._holders[event_id]:
                del self._holders[event_id]
                del self._locks[event_id]

    @contextmanager
    def hold(self, event_id: str):
        lock = self._acquire_entry(event_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(event_id)


class AutoSchedulerService:
    """
    Bulk-schedules accepted matches of an event into conflict-free meeting slots.

    Highest score first, first fit. Existing pending/accepted meetings exclude their
    pair, so re-running after a partial or failed run is safe.
    """

    def __init__(self, lock_registry: Optional[EventLockRegistry] = None):
        self.locks = lock_registry if lock_registry is not None else EventLockRegistry()

    def select_candidates(self, db: Session, event_id: str) -> Tuple[List[CandidateMatch], List[CandidateMatch]]:
        """Returns (accepted, accepted minus pairs already covered by an open meeting), score descending."""
        rows = (
            db.query(Match)
            .filter(Match.event_id == event_id, Match.status == "accepted")
            .order_by(Match.score.desc(), Match.id.asc())
            .all()
        )
        accepted = [
            CandidateMatch(
                match_id=m.id,
                participant_a_id=m.participant_a_id,
                participant_b_id=m.participant_b_id,
                score=m.score,
            )
            for m in rows
        ]
        if not accepted:
            return accepted, []

        existing = (
            db.query(Meeting.requester_id, Meeting.recipient_id)
            .filter(Meeting.event_id == event_id, Meeting.status.in_(OPEN_MEETING_STATUSES))
            .all()
        )
        covered = {pair_key(requester_id, recipient_id) for requester_id, recipient_id in existing}

        unscheduled = [
            m for m in accepted
            if pair_key(m.participant_a_id, m.participant_b_id) not in covered
        ]
        return accepted, unscheduled

    def persist(self, db: Session, meetings: Sequence[ScheduledMeeting]):
        """Single transaction: either every meeting of the run is stored or none is."""
        if not meetings:
            return
        try:
            db.add_all([m.to_row() for m in meetings])
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            message = str(getattr(e, "orig", None) or e)
            logger.error(f"[AutoSchedule] Batch insert of {len(meetings)} meetings failed: {message}")
            auto_schedule_runs.labels(outcome="failed").inc()
            raise HTTPException(status_code=500, detail=message)

    def auto_schedule(self, db: Session, event_id: str, user_id: str) -> AutoScheduleResponse:
        event = db.get(Event, event_id)
        if not is_event_organizer(event, user_id):
            logger.warning(f"[AutoSchedule] User {user_id} is not the organizer of event {event_id}")
            raise HTTPException(status_code=403, detail="Not authorized")

        duration, break_minutes = resolve_meeting_settings(event)

        with self.locks.hold(event_id):
            accepted, candidates = self.select_candidates(db, event_id)
            if not accepted:
                auto_schedule_runs.labels(outcome="no_matches").inc()
                return AutoScheduleResponse(scheduled=0, message=NO_ACCEPTED_MATCHES)
            if not candidates:
                auto_schedule_runs.labels(outcome="all_covered").inc()
                return AutoScheduleResponse(scheduled=0, message=ALL_MATCHES_COVERED)

            slots = load_available_slots(db, event_id)
            if not slots:
                auto_schedule_runs.labels(outcome="no_availability").inc()
                return AutoScheduleResponse(scheduled=0, message=NO_AVAILABILITY)

            availability = build_availability_index(slots)
            logger.info(
                f"[AutoSchedule] Event {event_id}: {len(candidates)} candidates, "
                f"{len(availability)} participants with availability, "
                f"duration={duration}m break={break_minutes}m"
            )

            with auto_schedule_duration.time():
                outcome = schedule_matches(candidates, availability, duration, break_minutes, event_id)

            self.persist(db, outcome.scheduled)

        scheduled = len(outcome.scheduled)
        unmatched = len(candidates) - scheduled
        meetings_auto_scheduled.inc(scheduled)
        matches_unscheduled.inc(unmatched)
        auto_schedule_runs.labels(outcome="scheduled").inc()
        logger.info(f"[AutoSchedule] Event {event_id}: scheduled={scheduled} unmatched={unmatched}")

        return AutoScheduleResponse(
            scheduled=scheduled,
            unmatched=unmatched,
            message=(
                f"Scheduled {scheduled} meetings, {unmatched} could not be scheduled "
                f"due to availability conflicts."
            ),
        )
