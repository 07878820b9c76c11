"""
EventMatch Services Module

Domain services behind the API routers: bulk meeting scheduling for an event,
participant meeting requests and reminders, and intent-vector computation.
"""

# === Scheduling ===
from .auto_scheduler_service import AutoSchedulerService, EventLockRegistry
from .booking_ledger import BookingLedger

# === Meetings ===
from .meeting_service import MeetingService

# === Intent Engine ===
from .intent_engine_service import IntentEngineService

# === Exported Interface ===
__all__ = [
    "AutoSchedulerService",
    "EventLockRegistry",
    "BookingLedger",
    "MeetingService",
    "IntentEngineService",
]
