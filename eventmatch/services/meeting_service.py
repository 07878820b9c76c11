# eventmatch/services/meeting_service.py

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventmatch.base.config import settings
from eventmatch.base.metrics import reminders_sent
from eventmatch.base.models import (
    MeetingCreateRequest,
    MeetingCreateResponse,
    MeetingUpdateRequest,
    ReminderResponse,
    SuccessResponse,
)
from eventmatch.models.tables import (
    Event,
    Meeting,
    Notification,
    Participant,
    ParticipantActivity,
    Profile,
)

logger = logging.getLogger("meeting_service")

POSITIVE_RATING = 4


def _parse_datetime(value: Optional[str], field_name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field_name} must be an ISO datetime")


def _format_clock(value: datetime) -> str:
    # 9:30 AM
    return f"{value.hour % 12 or 12}:{value.minute:02d} {'AM' if value.hour < 12 else 'PM'}"


class MeetingService:
    """
    Participant-initiated meeting requests, status changes and reminder fan-out.
    """

    def _participant_ids_for_user(self, db: Session, user_id: str) -> List[str]:
        rows = db.query(Participant.id).filter(Participant.user_id == user_id).all()
        return [row.id for row in rows]

    def create_meeting(self, req: MeetingCreateRequest, user_id: str, db: Session) -> MeetingCreateResponse:
        if not req.event_id or not req.recipient_participant_id:
            raise HTTPException(status_code=400, detail="eventId and recipientParticipantId required")

        requester = db.query(Participant).filter_by(event_id=req.event_id, user_id=user_id).first()
        if not requester:
            raise HTTPException(status_code=403, detail="You are not a participant in this event")

        event = db.get(Event, req.event_id)
        duration = (event.meeting_duration_minutes if event else None) or settings.DEFAULT_MEETING_DURATION_MINUTES

        meeting = Meeting(
            event_id=req.event_id,
            requester_id=requester.id,
            recipient_id=req.recipient_participant_id,
            status="pending",
            start_time=_parse_datetime(req.start_time, "startTime"),
            end_time=_parse_datetime(req.end_time, "endTime"),
            duration_minutes=duration,
            meeting_type=req.meeting_type or "in-person",
            agenda_note=req.agenda_note,
        )

        try:
            db.add(meeting)
            db.flush()

            recipient = db.get(Participant, req.recipient_participant_id)
            if recipient:
                requester_name = requester.profile.full_name if requester.profile else None
                db.add(Notification(
                    user_id=recipient.user_id,
                    event_id=req.event_id,
                    type="meeting_request",
                    title="New meeting request",
                    body=f"{requester_name or 'Someone'} wants to meet with you",
                    link="/dashboard/meetings",
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Meetings] Create failed: {e}")
            raise HTTPException(status_code=500, detail=str(getattr(e, "orig", None) or e))

        logger.info(f"[Meetings] {requester.id} requested meeting {meeting.id} with {req.recipient_participant_id}")
        return MeetingCreateResponse(meeting_id=meeting.id)

    def update_meeting(self, req: MeetingUpdateRequest, user_id: str, db: Session) -> SuccessResponse:
        if not req.meeting_id:
            raise HTTPException(status_code=400, detail="meetingId required")

        meeting = db.get(Meeting, req.meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")

        my_ids = set(self._participant_ids_for_user(db, user_id))
        if meeting.requester_id not in my_ids and meeting.recipient_id not in my_ids:
            logger.warning(f"[Meetings] User {user_id} tried to update meeting {meeting.id} they are not part of")
            raise HTTPException(status_code=403, detail="Not authorized")

        if req.status:
            meeting.status = req.status
        if req.decline_reason:
            meeting.decline_reason = req.decline_reason

        if req.rating is not None:
            if meeting.requester_id in my_ids:
                meeting.requester_rating = req.rating
                if req.feedback:
                    meeting.requester_feedback = req.feedback
            elif meeting.recipient_id in my_ids:
                meeting.recipient_rating = req.rating
                if req.feedback:
                    meeting.recipient_feedback = req.feedback

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Meetings] Update of {req.meeting_id} failed: {e}")
            raise HTTPException(status_code=500, detail=str(getattr(e, "orig", None) or e))

        self._record_outcome(db, meeting, my_ids, req)
        return SuccessResponse()

    def _record_outcome(self, db: Session, meeting: Meeting, my_ids: set, req: MeetingUpdateRequest):
        """Feeds acceptance and good ratings back as participant activity. Best effort."""
        my_pid = meeting.requester_id if meeting.requester_id in my_ids else meeting.recipient_id
        other_pid = meeting.recipient_id if my_pid == meeting.requester_id else meeting.requester_id

        activities = []
        if req.status == "accepted":
            activities.append(ParticipantActivity(
                participant_id=my_pid,
                event_id=meeting.event_id,
                action_type="meeting_accepted",
                target_participant_id=other_pid,
                details={},
            ))
        if req.rating is not None and req.rating >= POSITIVE_RATING:
            activities.append(ParticipantActivity(
                participant_id=my_pid,
                event_id=meeting.event_id,
                action_type="meeting_rated",
                target_participant_id=other_pid,
                details={"rating": req.rating, "positive": True},
            ))
        if not activities:
            return

        try:
            db.add_all(activities)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"[Activity] Failed to record outcome for meeting {meeting.id}: {e}")

    def _meetings_starting_between(self, db: Session, start: datetime, end: datetime) -> List[Meeting]:
        return (
            db.query(Meeting)
            .filter(
                Meeting.status == "accepted",
                Meeting.start_time >= start,
                Meeting.start_time < end,
            )
            .all()
        )

    def send_reminders(self, db: Session, now: Optional[datetime] = None) -> ReminderResponse:
        now = now or datetime.now()
        window = timedelta(minutes=settings.REMINDER_WINDOW_MINUTES)
        soon = now + timedelta(minutes=settings.REMINDER_SOON_MINUTES)
        upcoming = now + timedelta(minutes=settings.REMINDER_UPCOMING_MINUTES)

        due: List[Tuple[Meeting, str]] = (
            [(m, "15min") for m in self._meetings_starting_between(db, soon, soon + window)]
            + [(m, "1hour") for m in self._meetings_starting_between(db, upcoming, upcoming + window)]
        )
        if not due:
            return ReminderResponse(reminders=0)

        participant_ids = {pid for m, _ in due for pid in (m.requester_id, m.recipient_id)}
        participants: Dict[str, Participant] = {
            p.id: p
            for p in db.query(Participant).filter(Participant.id.in_(participant_ids)).all()
        }

        notifications: List[Notification] = []
        for meeting, reminder_type in due:
            requester = participants.get(meeting.requester_id)
            recipient = participants.get(meeting.recipient_id)
            if not requester or not recipient:
                logger.warning(f"[Reminders] Skipping meeting {meeting.id}: participant record missing")
                continue

            label = "in 15 minutes" if reminder_type == "15min" else "in 1 hour"
            location = f" at {meeting.location}" if meeting.location else ""
            body = f"{_format_clock(meeting.start_time)}{location} · {meeting.duration_minutes}min"

            for me, other in ((requester, recipient), (recipient, requester)):
                notifications.append(Notification(
                    user_id=me.user_id,
                    event_id=meeting.event_id,
                    type="meeting_reminder",
                    title=f"Meeting with {_display_name(other.profile)} {label}",
                    body=body,
                    link="/dashboard/meetings",
                ))
            reminders_sent.labels(reminder_type=reminder_type).inc(2)

        if notifications:
            try:
                db.add_all(notifications)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"[Reminders] Insert failed: {e}")
                raise HTTPException(status_code=500, detail=str(getattr(e, "orig", None) or e))

        logger.info(f"[Reminders] {len(notifications)} reminders for {len(due)} meetings")
        return ReminderResponse(reminders=len(notifications), meetings=len(due))


def _display_name(profile: Optional[Profile]) -> str:
    return (profile.full_name if profile else None) or "your match"
