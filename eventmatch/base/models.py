from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# === 📅 Auto-Scheduling ===

class AutoScheduleRequest(CamelModel):
    event_id: Optional[str] = Field(None, alias="eventId", description="Event whose accepted matches should be scheduled")


class AutoScheduleResponse(BaseModel):
    scheduled: int = Field(..., description="Meetings created by this run")
    unmatched: Optional[int] = Field(None, description="Candidates left without a conflict-free slot")
    message: str


# === 🤝 Meeting Requests ===

class MeetingCreateRequest(CamelModel):
    event_id: Optional[str] = Field(None, alias="eventId")
    recipient_participant_id: Optional[str] = Field(None, alias="recipientParticipantId")
    start_time: Optional[str] = Field(None, alias="startTime", description="ISO datetime, event-local")
    end_time: Optional[str] = Field(None, alias="endTime")
    agenda_note: Optional[str] = Field(None, alias="agendaNote")
    meeting_type: Optional[str] = Field(None, alias="meetingType", description="in-person, virtual, ...")


class MeetingCreateResponse(CamelModel):
    success: bool = True
    meeting_id: str = Field(..., alias="meetingId")


class MeetingUpdateRequest(CamelModel):
    meeting_id: Optional[str] = Field(None, alias="meetingId")
    status: Optional[str] = None
    decline_reason: Optional[str] = Field(None, alias="declineReason")
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True


class ReminderResponse(BaseModel):
    reminders: int
    meetings: Optional[int] = None


# === 🧭 Intent Engine ===

class IntentComputeRequest(CamelModel):
    event_id: Optional[str] = Field(None, alias="eventId")


class IntentComputeResponse(BaseModel):
    success: bool = True
    total: int
    updated: int


class IntentResult(BaseModel):
    vector: Dict[str, float]
    confidence: int


class ParticipantIntentInput(BaseModel):
    intents: Optional[List[str]] = None
    intent: Optional[str] = None
    looking_for: Optional[str] = None
    offering: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    company_name: Optional[str] = None
