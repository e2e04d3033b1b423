import os
from datetime import datetime, timedelta, timezone

import pytest

if not os.getenv("DATABASE_URL"):
    pytest.skip("DATABASE_URL must be set for Postgres-only tests.", allow_module_level=True)

from core.db.base import get_conn
from core.flex.defaults import default_search_settings
from core.flex.lifecycle import SearchSessionService
from core.storage import ActiveSessionExists, PostgresStorage, StorageConflict

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

_TABLES = [
    "offers",
    "search_sessions",
    "activity_logs",
    "search_settings",
    "location_settings",
    "login_sessions",
    "users",
]


def _truncate_all():
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("TRUNCATE " + ", ".join(_TABLES) + " RESTART IDENTITY CASCADE")
    conn.commit()
    conn.close()


@pytest.fixture
def pg():
    storage = PostgresStorage()
    storage.init()
    _truncate_all()
    yield storage
    _truncate_all()


def test_user_and_settings_round_trip(pg):
    user = pg.create_user("Driver1", "hash", amazon_email="driver1@example.com")
    assert pg.get_user_by_username("driver1")["id"] == user["id"]
    with pytest.raises(StorageConflict):
        pg.create_user("driver1", "hash")

    pg.create_search_settings(user["id"], default_search_settings())
    settings = pg.get_search_settings(user["id"])
    assert settings["schedule"]["monday"]["start_time"] == "00:00"
    assert pg.update_search_settings(user["id"], {"strategy": "short-burst"})["strategy"] == "short-burst"


def test_duplicate_location_code_conflicts(pg):
    user = pg.create_user("driver1", "hash")
    pg.create_location_setting(user["id"], {"code": "DXN1"})
    with pytest.raises(StorageConflict):
        pg.create_location_setting(user["id"], {"code": "DXN1"})


def test_one_running_session_per_user(pg):
    user = pg.create_user("driver1", "hash")
    pg.create_search_session(user["id"], NOW)
    with pytest.raises(ActiveSessionExists):
        pg.create_search_session(user["id"], NOW)


def test_lifecycle_against_postgres(pg):
    user = pg.create_user("driver1", "hash")
    pg.create_search_settings(user["id"], dict(default_search_settings(), timezone="UTC"))
    lifecycle = SearchSessionService(pg)

    lifecycle.start_session(user["id"], now=NOW - timedelta(minutes=30))
    stopped = lifecycle.stop_session(user["id"], now=NOW)

    assert stopped["status"] == "stopped"
    assert pg.stop_search_session(stopped["id"], NOW) is None
    assert lifecycle.get_status(user["id"], now=NOW)["stats"]["search_time_today"] == 30
