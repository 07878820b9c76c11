# eventmatch/routers/meetings.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Security
from sqlalchemy.orm import Session

from eventmatch.base.database import get_db
from eventmatch.base.models import (
    AutoScheduleRequest,
    AutoScheduleResponse,
    MeetingCreateRequest,
    MeetingCreateResponse,
    MeetingUpdateRequest,
    ReminderResponse,
    SuccessResponse,
)
from eventmatch.base.security import get_current_user_id, user_id_header, verify_cron_secret
from eventmatch.services.auto_scheduler_service import AutoSchedulerService
from eventmatch.services.meeting_service import MeetingService

router = APIRouter(tags=["Meetings"])
logger = logging.getLogger("meetings")

scheduler = AutoSchedulerService()
meeting_service = MeetingService()


# === Endpoints ===

@router.post(
    "/auto-schedule",
    summary="Bulk-schedule accepted matches",
    response_model=AutoScheduleResponse,
    response_model_exclude_none=True,
)
def auto_schedule(
    req: AutoScheduleRequest,
    caller: Optional[str] = Security(user_id_header),
    db: Session = Depends(get_db),
):
    # input validation precedes authentication for this endpoint
    if not req.event_id:
        raise HTTPException(status_code=400, detail="eventId required")
    user_id = get_current_user_id(caller)
    logger.info(f"[AutoSchedule] Run requested for event {req.event_id} by {user_id}")
    return scheduler.auto_schedule(db, req.event_id, user_id)


@router.post("", summary="Request a meeting", response_model=MeetingCreateResponse)
def create_meeting(
    req: MeetingCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return meeting_service.create_meeting(req, user_id, db)


@router.patch("", summary="Accept, decline, cancel or rate a meeting", response_model=SuccessResponse)
def update_meeting(
    req: MeetingUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return meeting_service.update_meeting(req, user_id, db)


@router.get(
    "/reminders",
    summary="Create reminder notifications for upcoming meetings",
    response_model=ReminderResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_cron_secret)],
)
def send_reminders(db: Session = Depends(get_db)):
    return meeting_service.send_reminders(db)
