# eventmatch/services/booking_ledger.py

from collections import defaultdict
from datetime import date
from typing import Dict, List

from eventmatch.utils.time_utils import DayInterval


class BookingLedger:
    """
    Intervals committed to each participant during one scheduling run.
    Build a new ledger per run; it is never persisted or shared across requests.
    """

    def __init__(self):
        self._booked: Dict[str, List[DayInterval]] = defaultdict(list)

    def is_booked(self, participant_id: str, day: date, start: int, end: int) -> bool:
        return any(
            interval.day == day and interval.overlaps(start, end)
            for interval in self._booked.get(participant_id, ())
        )

    def book(self, participant_id: str, day: date, start: int, end: int) -> DayInterval:
        interval = DayInterval(day, start, end)
        bookings = self._booked[participant_id]
        bookings.append(interval)
        bookings.sort(key=lambda b: (b.day, b.start))
        return interval

    def bookings_for(self, participant_id: str) -> List[DayInterval]:
        return list(self._booked.get(participant_id, ()))

    def participants(self) -> List[str]:
        return list(self._booked.keys())

    def __len__(self) -> int:
        return sum(len(v) for v in self._booked.values())
