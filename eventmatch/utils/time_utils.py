from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union


def time_to_minutes(value: Union[str, time]) -> int:
    """'09:30' / '09:30:00' / time(9, 30) -> 570 (minutes since midnight)."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or (hours == 24 and minutes):
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def normalize_time(value: Union[str, time]) -> str:
    """'9:00' / '09:00:00' -> '09:00'; '24:00' stays as end-of-day."""
    return minutes_to_time(time_to_minutes(value))


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def build_start_time(day: date, minutes: int) -> datetime:
    """Naive event-local timestamp for a minute offset on a calendar date."""
    return datetime.combine(day, time(minutes // 60, minutes % 60))


@dataclass(frozen=True)
class DayInterval:
    """Half-open [start, end) minute interval on one calendar date."""
    day: date
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_wrapped(self) -> bool:
        # end before start: a cross-midnight window, unsupported
        return self.end < self.start

    def overlaps(self, start: int, end: int) -> bool:
        return start < self.end and end > self.start

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def __str__(self) -> str:
        return f"{self.day.isoformat()} {minutes_to_time(self.start)}-{minutes_to_time(self.end)}"
