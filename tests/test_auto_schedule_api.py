import threading
from datetime import date, datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from eventmatch.models.tables import AvailabilitySlot, Meeting
from eventmatch.services.auto_scheduler_service import AutoSchedulerService, EventLockRegistry

URL = "/meetings/auto-schedule"


def post(client, headers, event_id="evt-1"):
    body = {"eventId": event_id} if event_id is not None else {}
    return client.post(URL, json=body, headers=headers)


def seed_pair(seed, a_window=("09:00", "10:00"), b_window=("09:30", "11:00"), **event_kwargs):
    event = seed.event(**event_kwargs)
    seed.participant(event, "pa")
    seed.participant(event, "pb")
    seed.match(event, "pa", "pb", 88)
    seed.slot(event, "pa", *a_window)
    seed.slot(event, "pb", *b_window)
    return event


def test_missing_event_id_is_rejected(client, organizer_headers):
    response = post(client, organizer_headers, event_id=None)
    assert response.status_code == 400
    assert response.json() == {"error": "eventId required"}
    assert post(client, {}, event_id=None).status_code == 400


def test_unauthenticated_caller_is_rejected(client, seed):
    seed.event()
    response = post(client, {})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_missing_api_key_is_rejected(client, seed, organizer_headers):
    seed.event()
    response = client.post(URL, json={"eventId": "evt-1"}, headers={**organizer_headers, "X-API-Key": "wrong"})
    assert response.status_code == 403


def test_only_the_organizer_may_schedule(client, seed):
    seed_pair(seed)
    response = post(client, {"X-User-Id": "someone-else"})
    assert response.status_code == 403
    assert response.json() == {"error": "Not authorized"}


def test_unknown_event_fails_closed(client, organizer_headers):
    response = post(client, organizer_headers, event_id="missing")
    assert response.status_code == 403


def test_no_accepted_matches_short_circuits(client, seed, organizer_headers):
    event = seed.event()
    seed.match(event, "pa", "pb", 70, status="pending")

    response = post(client, organizer_headers)
    assert response.status_code == 200
    assert response.json() == {"scheduled": 0, "message": "No accepted matches to schedule"}


def test_all_covered_matches_short_circuit(client, seed, organizer_headers):
    event = seed_pair(seed)
    seed.meeting(event, "pb", "pa", status="pending")

    response = post(client, organizer_headers)
    assert response.json() == {"scheduled": 0, "message": "All matches already have meetings"}


def test_missing_availability_short_circuits(client, seed, organizer_headers):
    event = seed.event()
    seed.match(event, "pa", "pb", 70)
    seed.slot(event, "pa", "09:00", "10:00", is_available=False)

    response = post(client, organizer_headers)
    assert response.json() == {"scheduled": 0, "message": "No availability slots found"}


def test_schedules_meeting_inside_the_overlap(client, seed, db_session, organizer_headers):
    seed_pair(seed)

    response = post(client, organizer_headers)
    assert response.status_code == 200
    assert response.json() == {
        "scheduled": 1,
        "unmatched": 0,
        "message": "Scheduled 1 meetings, 0 could not be scheduled due to availability conflicts.",
    }

    meeting = db_session.query(Meeting).one()
    assert meeting.start_time == datetime(2024, 5, 1, 9, 30)
    assert meeting.start_time.isoformat().startswith("2024-05-01T09:30:00")
    assert (meeting.requester_id, meeting.recipient_id) == ("pa", "pb")
    assert (meeting.status, meeting.meeting_type, meeting.duration_minutes) == ("accepted", "scheduled", 30)


def test_short_overlap_is_reported_unmatched(client, seed, db_session, organizer_headers):
    seed_pair(seed, b_window=("09:45", "10:00"))

    response = post(client, organizer_headers)
    body = response.json()
    assert (body["scheduled"], body["unmatched"]) == (0, 1)
    assert db_session.query(Meeting).count() == 0


def test_rerun_is_idempotent(client, seed, organizer_headers):
    event = seed_pair(seed)
    seed.participant(event, "pc")
    seed.match(event, "pa", "pc", 50)
    seed.slot(event, "pc", "15:00", "16:00")

    first = post(client, organizer_headers).json()
    second = post(client, organizer_headers).json()

    assert (first["scheduled"], first["unmatched"]) == (1, 1)
    assert (second["scheduled"], second["unmatched"]) == (0, 1)


def test_higher_score_wins_contended_slot(client, seed, db_session, organizer_headers):
    event = seed.event()
    for pid in ("c", "low", "high"):
        seed.participant(event, pid)
        seed.slot(event, pid, "09:00", "09:30")
    seed.match(event, "c", "low", 40)
    seed.match(event, "c", "high", 95)

    body = post(client, organizer_headers).json()
    assert (body["scheduled"], body["unmatched"]) == (1, 1)
    meeting = db_session.query(Meeting).one()
    assert meeting.recipient_id == "high"


def test_equal_scores_break_ties_by_match_id(client, seed, db_session, organizer_headers):
    event = seed.event()
    for pid in ("c", "x", "y"):
        seed.participant(event, pid)
        seed.slot(event, pid, "09:00", "09:30")
    seed.match(event, "c", "y", 60, match_id="m-2")
    seed.match(event, "c", "x", 60, match_id="m-1")

    post(client, organizer_headers)
    assert db_session.query(Meeting).one().recipient_id == "x"


def test_declined_meeting_does_not_block_rescheduling(client, seed, db_session, organizer_headers):
    event = seed_pair(seed)
    seed.meeting(event, "pa", "pb", status="declined")

    body = post(client, organizer_headers).json()
    assert body["scheduled"] == 1
    assert db_session.query(Meeting).filter_by(status="accepted").count() == 1


@pytest.mark.parametrize("duration, break_minutes, expected_starts", [
    (None, None, [(9, 0), (9, 35)]),
    (20, 0, [(9, 0), (9, 20)]),
])
def test_event_meeting_settings_drive_stride(
    client, seed, db_session, organizer_headers, duration, break_minutes, expected_starts
):
    event = seed.event(duration=duration, break_minutes=break_minutes)
    for pid in ("c", "x", "y"):
        seed.participant(event, pid)
        seed.slot(event, pid, "09:00", "10:10")
    seed.match(event, "c", "x", 90)
    seed.match(event, "c", "y", 80)

    post(client, organizer_headers)
    starts = sorted((m.start_time.hour, m.start_time.minute) for m in db_session.query(Meeting).all())
    assert starts == expected_starts


def test_out_of_range_stored_windows_do_not_break_the_run(client, seed, db_session, organizer_headers):
    event = seed_pair(seed)
    # core insert skips the model validators
    for pid in ("pa", "pb"):
        db_session.execute(AvailabilitySlot.__table__.insert().values(
            id=f"bad-{pid}", event_id=event.id, participant_id=pid,
            date=date(2024, 5, 1), start_time="24:00", end_time="24:59", is_available=True,
        ))
    db_session.commit()

    response = post(client, organizer_headers)
    assert response.status_code == 200
    assert response.json()["scheduled"] == 1
    assert db_session.query(Meeting).one().start_time == datetime(2024, 5, 1, 9, 30)


def test_concurrent_run_waits_for_the_event_lock(seed, db_session, organizer_headers):
    seed_pair(seed)
    registry = EventLockRegistry()
    service = AutoSchedulerService(registry)
    results = []

    def run():
        results.append(service.auto_schedule(db_session, "evt-1", organizer_headers["X-User-Id"]))

    worker = threading.Thread(target=run)
    with registry.hold("evt-1"):
        worker.start()
        worker.join(0.2)
        assert worker.is_alive()
        assert results == []
    worker.join(5)

    assert results[0].scheduled == 1
    assert len(registry) == 0


def test_persistence_failure_discards_the_whole_run(client, seed, db_session, organizer_headers, monkeypatch):
    event = seed_pair(seed)
    seed.participant(event, "pc")
    seed.match(event, "pc", "pa", 40)
    seed.slot(event, "pc", "10:00", "11:00")

    def failing_commit():
        raise SQLAlchemyError("connection reset by peer")

    monkeypatch.setattr(db_session, "commit", failing_commit)

    response = post(client, organizer_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "connection reset by peer"}

    monkeypatch.undo()
    assert db_session.query(Meeting).count() == 0
