import asyncio
from datetime import datetime, timedelta, timezone

import pytest

import worker.main as worker_main
from core.flex.defaults import default_location_rows, default_search_settings
from core.flex.lifecycle import SearchSessionService
from core.flex.service import FlexService, ShiftSearchResult

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_worker_state(monkeypatch):
    monkeypatch.setattr(worker_main, "_services", {})
    monkeypatch.setattr(worker_main, "_last_poll", {})


@pytest.fixture
def user(storage):
    user = storage.create_user("driver1", "hash", amazon_email="driver1@example.com")
    storage.create_search_settings(user["id"], default_search_settings())
    for row in default_location_rows():
        storage.create_location_setting(user["id"], row)
    return user


def _fake_factory():
    return FlexService(test_mode=True)


def _run(storage, now=NOW, factory=_fake_factory):
    return asyncio.run(worker_main.run_once(storage, now=now, factory=factory))


def test_run_once_accepts_matching_fake_shifts(storage, user):
    session = SearchSessionService(storage).start_session(user["id"], now=NOW)

    accepted = _run(storage)

    assert accepted == 2
    session = storage.get_search_session(session["id"])
    assert session["offers_found"] == 3
    assert session["offers_accepted"] == 2
    reasons = {o["location_code"]: o["reason"] for o in storage.list_offers(user["id"])}
    assert reasons == {"DXN1": "MATCHED", "DHA2": "PAY_TOO_LOW", "CU73": "MATCHED"}


def test_run_once_without_sessions_does_nothing(storage, user):
    assert _run(storage) == 0
    assert storage.list_offers(user["id"]) == []


def test_stop_after_accepted_ends_the_batch(storage, user):
    storage.update_search_settings(user["id"], {"stop_after_accepted": True})
    session = SearchSessionService(storage).start_session(user["id"], now=NOW)

    accepted = _run(storage)

    assert accepted == 1
    session = storage.get_search_session(session["id"])
    assert session["status"] == "stopped"
    assert session["offers_found"] == 1
    assert session["offers_accepted"] == 1


def test_outside_schedule_skips_search(storage, user):
    schedule = {day: dict(entry, enabled=False) for day, entry in default_search_settings()["schedule"].items()}
    storage.update_search_settings(user["id"], {"schedule": schedule})
    SearchSessionService(storage).start_session(user["id"], now=NOW)

    assert _run(storage) == 0
    assert storage.list_offers(user["id"]) == []


def test_polling_respects_strategy_cadence(storage, user):
    session = SearchSessionService(storage).start_session(user["id"], now=NOW)

    _run(storage, now=NOW)
    _run(storage, now=NOW + timedelta(seconds=10))
    assert storage.get_search_session(session["id"])["offers_found"] == 3

    _run(storage, now=NOW + timedelta(seconds=61))
    assert storage.get_search_session(session["id"])["offers_found"] == 6


def test_failed_accept_is_recorded_as_not_accepted(storage, user):
    class LosingService(FlexService):
        async def accept_shift(self, candidate):
            return False

    session = SearchSessionService(storage).start_session(user["id"], now=NOW)

    accepted = _run(storage, factory=lambda: LosingService(test_mode=True))

    assert accepted == 0
    assert storage.get_search_session(session["id"])["offers_accepted"] == 0
    dxn1 = next(o for o in storage.list_offers(user["id"]) if o["location_code"] == "DXN1")
    assert dxn1["accepted"] is False
    assert dxn1["reason"] == "MATCHED"


def test_search_error_records_nothing(storage, user):
    class BrokenService(FlexService):
        async def perform_search(self, now=None):
            return ShiftSearchResult(error="offers page did not load")

    SearchSessionService(storage).start_session(user["id"], now=NOW)

    assert _run(storage, factory=lambda: BrokenService(test_mode=True)) == 0
    assert storage.list_offers(user["id"]) == []


def test_stopped_search_logs_out_of_flex(storage, user):
    lifecycle = SearchSessionService(storage)
    lifecycle.start_session(user["id"], now=NOW)
    _run(storage)
    service = worker_main._services[user["id"]]
    assert service.is_logged_in

    lifecycle.stop_session(user["id"], now=NOW + timedelta(minutes=1))
    _run(storage, now=NOW + timedelta(minutes=2))

    assert worker_main._services == {}
    assert service.is_logged_in is False


def test_session_without_flex_account_is_skipped(storage):
    user = storage.create_user("driver2", "hash")
    storage.create_search_settings(user["id"], default_search_settings())
    SearchSessionService(storage).start_session(user["id"], now=NOW)

    assert _run(storage) == 0


def test_deleted_session_ends_the_batch(storage, user):
    session = SearchSessionService(storage).start_session(user["id"], now=NOW)

    class DeletingService(FlexService):
        async def accept_shift(self, candidate):
            storage._rows["search_sessions"].pop(session["id"], None)
            return True

    accepted = _run(storage, factory=lambda: DeletingService(test_mode=True))

    assert accepted == 1
    assert storage.list_offers(user["id"]) == []
