from datetime import datetime, timedelta, timezone

import pytest

from core.flex.lifecycle import SearchSessionService, SessionStateError
from core.flex.models import (
    CandidateOffer,
    Decision,
    LocationPreference,
    MatchReason,
    SearchPreferences,
)
from core.storage import ActiveSessionExists

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

MATCHED = Decision(accept=True, reason=MatchReason.MATCHED)
TOO_LOW = Decision(accept=False, reason=MatchReason.PAY_TOO_LOW)


@pytest.fixture
def user(storage):
    user = storage.create_user("driver1", "hash", amazon_email="driver1@example.com")
    storage.create_search_settings(user["id"], {"strategy": "steady", "stop_after_accepted": False, "timezone": "UTC"})
    return user


@pytest.fixture
def service(storage):
    return SearchSessionService(storage)


def _offer(pay=5500, start=NOW + timedelta(minutes=90)):
    return CandidateOffer(location_code="DXN1", pay=pay, start_time=start, end_time=start + timedelta(hours=3))


def _actions(storage, user):
    return [log["action"] for log in reversed(storage.list_activity_logs(user["id"]))]


def test_start_creates_running_session(storage, service, user):
    session = service.start_session(user["id"], now=NOW)

    assert session["status"] == "running"
    assert session["offers_found"] == 0
    assert session["offers_accepted"] == 0
    assert session["end_time"] is None
    assert storage.get_active_search_session(user["id"])["id"] == session["id"]
    assert _actions(storage, user) == ["SEARCH_STARTED"]


def test_second_start_is_rejected(storage, service, user):
    service.start_session(user["id"], now=NOW)

    with pytest.raises(SessionStateError) as exc:
        service.start_session(user["id"], now=NOW)

    assert exc.value.code == SessionStateError.ALREADY_RUNNING
    assert len(storage.list_search_sessions(user["id"])) == 1


def test_storage_enforces_one_running_session(storage, user):
    storage.create_search_session(user["id"], NOW)
    with pytest.raises(ActiveSessionExists):
        storage.create_search_session(user["id"], NOW)


def test_stop_without_running_session_is_rejected(service, user):
    with pytest.raises(SessionStateError) as exc:
        service.stop_session(user["id"], now=NOW)
    assert exc.value.code == SessionStateError.NO_ACTIVE_SESSION


def test_stop_closes_session(storage, service, user):
    service.start_session(user["id"], now=NOW)
    stopped = service.stop_session(user["id"], now=NOW + timedelta(minutes=5))

    assert stopped["status"] == "stopped"
    assert stopped["end_time"] == NOW + timedelta(minutes=5)
    assert storage.get_active_search_session(user["id"]) is None
    assert _actions(storage, user) == ["SEARCH_STARTED", "SEARCH_STOPPED"]

    # A stopped session can be followed by a fresh one.
    assert service.start_session(user["id"], now=NOW + timedelta(minutes=6))["status"] == "running"


def test_record_decision_counts_offers(storage, service, user):
    session = service.start_session(user["id"], now=NOW)

    session = service.record_decision(session, _offer(pay=3000), TOO_LOW, now=NOW)
    session = service.record_decision(session, _offer(), MATCHED, now=NOW)

    assert session["offers_found"] == 2
    assert session["offers_accepted"] == 1
    assert session["status"] == "running"

    offers = storage.list_offers(user["id"])
    assert {o["reason"] for o in offers} == {"PAY_TOO_LOW", "MATCHED"}
    assert sum(1 for o in offers if o["accepted"]) == 1
    assert _actions(storage, user) == ["SEARCH_STARTED", "OFFER_FOUND", "OFFER_ACCEPTED"]


def test_skipped_offer_log_mentions_reason(storage, service, user):
    session = service.start_session(user["id"], now=NOW)
    service.record_decision(session, _offer(pay=3000), TOO_LOW, now=NOW)

    latest = storage.list_activity_logs(user["id"], limit=1)[0]
    assert latest["action"] == "OFFER_FOUND"
    assert "£30.00" in latest["details"]
    assert "PAY_TOO_LOW" in latest["details"]


def test_accepted_offer_copies_location_details(storage, service, user):
    prefs = SearchPreferences(
        locations=[LocationPreference(code="DXN1", name="West Drayton", address="UB7 9FN", is_ulez=True)]
    )
    session = service.start_session(user["id"], now=NOW)
    service.record_decision(session, _offer(), MATCHED, preferences=prefs, now=NOW)

    offer = storage.list_offers(user["id"])[0]
    assert offer["location_name"] == "West Drayton"
    assert offer["location_address"] == "UB7 9FN"
    assert offer["is_ulez"] is True
    assert offer["session_id"] == session["id"]


def test_stop_after_accepted_stops_in_same_step(storage, service, user):
    prefs = SearchPreferences(stop_after_accepted=True)
    session = service.start_session(user["id"], now=NOW)

    session = service.record_decision(session, _offer(), MATCHED, preferences=prefs, now=NOW)

    assert session["status"] == "stopped"
    assert session["offers_accepted"] == 1
    assert storage.get_active_search_session(user["id"]) is None
    assert _actions(storage, user)[-2:] == ["OFFER_ACCEPTED", "SEARCH_STOPPED"]


def test_stop_after_accepted_read_from_stored_settings(storage, service, user):
    storage.update_search_settings(user["id"], {"stop_after_accepted": True})
    session = service.start_session(user["id"], now=NOW)

    session = service.record_decision(session, _offer(), MATCHED, now=NOW)

    assert session["status"] == "stopped"


def test_rejection_never_stops_session(service, user):
    prefs = SearchPreferences(stop_after_accepted=True)
    session = service.start_session(user["id"], now=NOW)

    session = service.record_decision(session, _offer(pay=3000), TOO_LOW, preferences=prefs, now=NOW)

    assert session["status"] == "running"


def test_decision_for_stopped_session_is_ignored(storage, service, user):
    session = service.start_session(user["id"], now=NOW)
    service.stop_session(user["id"], now=NOW)

    result = service.record_decision(session, _offer(), MATCHED, now=NOW)

    assert result["status"] == "stopped"
    assert result["offers_found"] == 0
    assert storage.list_offers(user["id"]) == []


def test_decision_for_deleted_session_returns_none(storage, service, user):
    session = service.start_session(user["id"], now=NOW)
    storage._rows["search_sessions"].pop(session["id"])

    assert service.record_decision(session, _offer(), MATCHED, now=NOW) is None
    assert storage.list_offers(user["id"]) == []


def test_status_reports_search_time_and_weekly_accepts(storage, service, user):
    # Earlier today: 30 minutes, stopped.
    service.start_session(user["id"], now=NOW - timedelta(hours=2))
    service.stop_session(user["id"], now=NOW - timedelta(hours=1, minutes=30))
    # Running for the last 45 minutes.
    session = service.start_session(user["id"], now=NOW - timedelta(minutes=45))
    service.record_decision(session, _offer(), MATCHED, now=NOW - timedelta(minutes=10))

    status = service.get_status(user["id"], now=NOW)

    assert status["is_active"] is True
    assert status["session"]["id"] == session["id"]
    assert status["stats"]["search_time_today"] == 75
    assert status["stats"]["accepted_shifts_this_week"] == 1


def test_status_clips_sessions_to_today(service, user):
    # Started yesterday at 23:00 UTC, still running at 00:20.
    now = datetime(2025, 1, 15, 0, 20, tzinfo=timezone.utc)
    service.start_session(user["id"], now=now - timedelta(minutes=80))

    status = service.get_status(user["id"], now=now)

    assert status["stats"]["search_time_today"] == 20


def test_weekly_count_resets_on_sunday(storage, service, user):
    # Saturday 11 Jan 2025 acceptance does not count in the week starting Sunday 12 Jan.
    saturday = datetime(2025, 1, 11, 18, 0, tzinfo=timezone.utc)
    session = service.start_session(user["id"], now=saturday)
    service.record_decision(session, _offer(start=saturday + timedelta(hours=2)), MATCHED, now=saturday)
    service.stop_session(user["id"], now=saturday + timedelta(minutes=1))

    assert service.get_status(user["id"], now=saturday + timedelta(hours=1))["stats"]["accepted_shifts_this_week"] == 1
    assert service.get_status(user["id"], now=NOW)["stats"]["accepted_shifts_this_week"] == 0


def test_acceptance_at_sunday_midnight_counts_for_new_week(service, user):
    sunday = datetime(2025, 1, 12, 0, 0, tzinfo=timezone.utc)
    session = service.start_session(user["id"], now=sunday - timedelta(minutes=5))
    service.record_decision(session, _offer(start=sunday + timedelta(hours=2)), MATCHED, now=sunday)

    assert service.get_status(user["id"], now=NOW)["stats"]["accepted_shifts_this_week"] == 1


def test_status_with_no_sessions(service, user):
    status = service.get_status(user["id"], now=NOW)
    assert status == {
        "is_active": False,
        "session": None,
        "stats": {"search_time_today": 0, "accepted_shifts_this_week": 0},
    }
