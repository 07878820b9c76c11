# eventmatch/services/availability_service.py

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from eventmatch.models.tables import AvailabilitySlot
from eventmatch.utils.time_utils import DayInterval, time_to_minutes

logger = logging.getLogger("auto_scheduler")

AvailabilityIndex = Dict[str, List[DayInterval]]


def load_available_slots(db: Session, event_id: str) -> List[AvailabilitySlot]:
    return (
        db.query(AvailabilitySlot)
        .filter(AvailabilitySlot.event_id == event_id, AvailabilitySlot.is_available.is_(True))
        .order_by(AvailabilitySlot.date.asc(), AvailabilitySlot.start_time.asc(), AvailabilitySlot.id.asc())
        .all()
    )


def build_availability_index(slots: Iterable[AvailabilitySlot]) -> AvailabilityIndex:
    """
    participant_id -> [DayInterval] in input order.
    Participants without rows are absent; callers treat a missing key as no availability.
    """
    index: AvailabilityIndex = defaultdict(list)
    for slot in slots:
        try:
            interval = DayInterval(
                day=slot.date,
                start=time_to_minutes(slot.start_time),
                end=time_to_minutes(slot.end_time),
            )
        except ValueError as e:
            logger.warning(f"[Availability] Skipping malformed window for participant {slot.participant_id}: {e}")
            continue
        if interval.is_wrapped:
            logger.warning(
                f"[Availability] Unsupported cross-midnight window for participant {slot.participant_id}: "
                f"{slot.date} {slot.start_time}-{slot.end_time}"
            )
        index[slot.participant_id].append(interval)
    return dict(index)
