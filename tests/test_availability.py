from datetime import date
from types import SimpleNamespace

import pytest

from eventmatch.models.tables import AvailabilitySlot
from eventmatch.services.availability_service import build_availability_index, load_available_slots
from eventmatch.utils.time_utils import DayInterval

DAY = date(2024, 5, 1)


def row(participant_id, start, end, day=DAY):
    return SimpleNamespace(participant_id=participant_id, date=day, start_time=start, end_time=end)


def test_index_keeps_windows_in_input_order():
    index = build_availability_index([
        row("p1", "13:00", "14:00"),
        row("p2", "09:00", "10:00"),
        row("p1", "09:00", "09:30"),
    ])
    assert index == {
        "p1": [DayInterval(DAY, 780, 840), DayInterval(DAY, 540, 570)],
        "p2": [DayInterval(DAY, 540, 600)],
    }


def test_index_skips_out_of_range_rows():
    index = build_availability_index([
        row("p1", "24:00", "24:59"),
        row("p2", "09:00", "10:00"),
        row("p2", "24:10", "24:40"),
        row("p3", "noon", "13:00"),
    ])
    assert index == {"p2": [DayInterval(DAY, 540, 600)]}


def test_slot_times_are_stored_zero_padded(seed, db_session):
    event = seed.event()
    seed.participant(event, "pa")
    slot = seed.slot(event, "pa", "9:00", "09:45:00")

    db_session.expire_all()
    stored = db_session.get(AvailabilitySlot, slot.id)
    assert (stored.start_time, stored.end_time) == ("09:00", "09:45")


def test_slots_load_in_clock_order(seed, db_session):
    event = seed.event()
    seed.participant(event, "pa")
    seed.slot(event, "pa", "10:00", "11:00")
    seed.slot(event, "pa", "9:00", "9:30")
    seed.slot(event, "pa", "8:15", "8:45", day=date(2024, 5, 2))

    slots = load_available_slots(db_session, event.id)
    assert [(s.date.day, s.start_time) for s in slots] == [(1, "09:00"), (1, "10:00"), (2, "08:15")]


def test_invalid_slot_time_is_rejected_on_assignment():
    with pytest.raises(ValueError):
        AvailabilitySlot(event_id="evt-1", participant_id="pa", date=DAY, start_time="24:30", end_time="24:45")
