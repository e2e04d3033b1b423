"""
Storage abstraction shared by the API, the session lifecycle and the worker.

Two interchangeable backends:
- MemStorage: dicts keyed by integer id, for local runs and tests.
- PostgresStorage: thin adapter over the psycopg helpers in core.db.

Rows are plain dicts, as returned by the psycopg dict_row factory.
"""
from __future__ import annotations

import copy
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from core import database as db
from core.flex.models import SessionStatus, as_utc, utcnow

log = logging.getLogger(__name__)


class StorageConflict(Exception):
    """A uniqueness rule was violated."""


class ActiveSessionExists(StorageConflict):
    """The user already has a running search session."""


_LOCATION_FIELDS = (
    "code",
    "name",
    "address",
    "is_ulez",
    "enabled",
    "min_pay",
    "min_hourly_pay",
    "arrival_buffer",
    "min_shift_duration",
    "max_shift_duration",
)
_SETTINGS_FIELDS = ("strategy", "auto_solve_captcha", "stop_after_accepted", "timezone", "schedule")
_USER_FIELDS = ("amazon_email", "amazon_password", "notification_number")
_OFFER_FIELDS = (
    "session_id",
    "location_code",
    "location_name",
    "location_address",
    "is_ulez",
    "pay",
    "start_time",
    "end_time",
    "duration_hours",
    "hourly_rate",
    "accepted",
    "reason",
    "decided_at",
)


def _pick(data: Dict, fields) -> Dict:
    return {k: data[k] for k in fields if k in data}


class Storage(ABC):
    """Capability set every backend provides: get / create / update / list-by-owner."""

    def init(self) -> None:
        """Prepare the backend (create tables etc.)."""

    # -- users --
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[Dict]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[Dict]: ...

    @abstractmethod
    def create_user(self, username: str, password_hash: str, **fields) -> Dict: ...

    @abstractmethod
    def update_user(self, user_id: int, data: Dict) -> Optional[Dict]: ...

    # -- login sessions --
    @abstractmethod
    def create_login_session(self, token: str, user_id: int, expires_at: datetime) -> Dict: ...

    @abstractmethod
    def get_login_session(self, token: str) -> Optional[Dict]: ...

    @abstractmethod
    def touch_login_session(self, token: str, expires_at: datetime) -> None: ...

    @abstractmethod
    def delete_login_session(self, token: str) -> None: ...

    # -- location settings --
    @abstractmethod
    def list_location_settings(self, user_id: int) -> List[Dict]: ...

    @abstractmethod
    def get_location_setting(self, location_id: int) -> Optional[Dict]: ...

    @abstractmethod
    def create_location_setting(self, user_id: int, data: Dict) -> Dict: ...

    @abstractmethod
    def update_location_setting(self, location_id: int, data: Dict) -> Optional[Dict]: ...

    @abstractmethod
    def delete_location_setting(self, location_id: int) -> bool: ...

    # -- search settings --
    @abstractmethod
    def get_search_settings(self, user_id: int) -> Optional[Dict]: ...

    @abstractmethod
    def create_search_settings(self, user_id: int, data: Dict) -> Dict: ...

    @abstractmethod
    def update_search_settings(self, user_id: int, data: Dict) -> Optional[Dict]: ...

    # -- activity log --
    @abstractmethod
    def create_activity_log(self, user_id: int, action: str, details: str = "") -> Dict: ...

    @abstractmethod
    def list_activity_logs(self, user_id: int, limit: Optional[int] = 100) -> List[Dict]: ...

    # -- offers --
    @abstractmethod
    def create_offer(self, user_id: int, data: Dict) -> Dict: ...

    @abstractmethod
    def list_offers(self, user_id: int, limit: Optional[int] = 100) -> List[Dict]: ...

    @abstractmethod
    def count_accepted_offers(self, user_id: int, since: datetime) -> int: ...

    # -- search sessions --
    @abstractmethod
    def get_search_session(self, session_id: int) -> Optional[Dict]: ...

    @abstractmethod
    def get_active_search_session(self, user_id: int) -> Optional[Dict]: ...

    @abstractmethod
    def list_search_sessions(
        self,
        user_id: int,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[Dict]: ...

    @abstractmethod
    def list_running_search_sessions(self) -> List[Dict]: ...

    @abstractmethod
    def create_search_session(self, user_id: int, start_time: datetime) -> Dict:
        """Create a running session; raise ActiveSessionExists if one is already running."""

    @abstractmethod
    def stop_search_session(self, session_id: int, end_time: datetime) -> Optional[Dict]:
        """Stop a running session. Returns None when it was not running."""

    @abstractmethod
    def increment_search_session(self, session_id: int, found: int = 0, accepted: int = 0) -> Optional[Dict]: ...


class MemStorage(Storage):
    """In-memory backend. One lock guards every table."""

    _TABLES = ("users", "locations", "settings", "activity", "offers", "search_sessions")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: Dict[str, Dict[int, Dict]] = {name: {} for name in self._TABLES}
        self._next_id: Dict[str, int] = {name: 1 for name in self._TABLES}
        self._login_sessions: Dict[str, Dict] = {}

    def _insert(self, table: str, row: Dict) -> Dict:
        row_id = self._next_id[table]
        self._next_id[table] += 1
        row = dict(row, id=row_id)
        self._rows[table][row_id] = row
        return copy.deepcopy(row)

    def _get(self, table: str, row_id: int) -> Optional[Dict]:
        row = self._rows[table].get(row_id)
        return copy.deepcopy(row) if row else None

    def _owned(self, table: str, user_id: int) -> List[Dict]:
        return [copy.deepcopy(r) for r in self._rows[table].values() if r["user_id"] == user_id]

    # -- users --
    def get_user(self, user_id):
        return self._get("users", user_id)

    def get_user_by_username(self, username):
        key = (username or "").strip().lower()
        for row in self._rows["users"].values():
            if row["username"] == key:
                return copy.deepcopy(row)
        return None

    def create_user(self, username, password_hash, **fields):
        key = username.strip().lower()
        with self._lock:
            if any(r["username"] == key for r in self._rows["users"].values()):
                raise StorageConflict(f"username already exists: {key}")
            row = {
                "username": key,
                "password_hash": password_hash,
                "amazon_email": None,
                "amazon_password": None,
                "notification_number": None,
                "created_at": utcnow(),
            }
            row.update(_pick(fields, _USER_FIELDS))
            return self._insert("users", row)

    def update_user(self, user_id, data):
        with self._lock:
            row = self._rows["users"].get(user_id)
            if not row:
                return None
            row.update(_pick(data, _USER_FIELDS))
            return copy.deepcopy(row)

    # -- login sessions --
    def create_login_session(self, token, user_id, expires_at):
        now = utcnow()
        row = {"id": token, "user_id": user_id, "created_at": now, "last_seen_at": now, "expires_at": expires_at}
        with self._lock:
            self._login_sessions[token] = row
        return dict(row)

    def get_login_session(self, token):
        row = self._login_sessions.get(token)
        return dict(row) if row else None

    def touch_login_session(self, token, expires_at):
        with self._lock:
            row = self._login_sessions.get(token)
            if row:
                row["last_seen_at"] = utcnow()
                row["expires_at"] = expires_at

    def delete_login_session(self, token):
        with self._lock:
            self._login_sessions.pop(token, None)

    # -- location settings --
    def list_location_settings(self, user_id):
        return sorted(self._owned("locations", user_id), key=lambda r: r["id"])

    def get_location_setting(self, location_id):
        return self._get("locations", location_id)

    def create_location_setting(self, user_id, data):
        with self._lock:
            code = data["code"]
            if any(r["user_id"] == user_id and r["code"] == code for r in self._rows["locations"].values()):
                raise StorageConflict(f"location already configured: {code}")
            row = {
                "user_id": user_id,
                "name": "",
                "address": "",
                "is_ulez": False,
                "enabled": True,
                "min_pay": 0,
                "min_hourly_pay": 0,
                "arrival_buffer": 60,
                "min_shift_duration": 0,
                "max_shift_duration": 24,
            }
            row.update(_pick(data, _LOCATION_FIELDS))
            return self._insert("locations", row)

    def update_location_setting(self, location_id, data):
        with self._lock:
            row = self._rows["locations"].get(location_id)
            if not row:
                return None
            row.update(_pick(data, _LOCATION_FIELDS))
            return copy.deepcopy(row)

    def delete_location_setting(self, location_id):
        with self._lock:
            return self._rows["locations"].pop(location_id, None) is not None

    # -- search settings --
    def get_search_settings(self, user_id):
        for row in self._rows["settings"].values():
            if row["user_id"] == user_id:
                return copy.deepcopy(row)
        return None

    def create_search_settings(self, user_id, data):
        with self._lock:
            if any(r["user_id"] == user_id for r in self._rows["settings"].values()):
                raise StorageConflict(f"search settings already exist for user {user_id}")
            row = {"user_id": user_id}
            row.update(_pick(data, _SETTINGS_FIELDS))
            return self._insert("settings", copy.deepcopy(row))

    def update_search_settings(self, user_id, data):
        with self._lock:
            for row in self._rows["settings"].values():
                if row["user_id"] == user_id:
                    row.update(copy.deepcopy(_pick(data, _SETTINGS_FIELDS)))
                    return copy.deepcopy(row)
        return None

    # -- activity log --
    def create_activity_log(self, user_id, action, details=""):
        with self._lock:
            return self._insert(
                "activity",
                {"user_id": user_id, "action": str(action), "details": details, "timestamp": utcnow()},
            )

    def list_activity_logs(self, user_id, limit=100):
        rows = sorted(self._owned("activity", user_id), key=lambda r: (r["timestamp"], r["id"]), reverse=True)
        return rows[:limit] if limit is not None else rows

    # -- offers --
    def create_offer(self, user_id, data):
        with self._lock:
            row = {"user_id": user_id, "accepted": False, "reason": None, "decided_at": utcnow()}
            row.update(_pick(data, _OFFER_FIELDS))
            return self._insert("offers", row)

    def list_offers(self, user_id, limit=100):
        rows = sorted(self._owned("offers", user_id), key=lambda r: (r["decided_at"], r["id"]), reverse=True)
        return rows[:limit] if limit is not None else rows

    def count_accepted_offers(self, user_id, since):
        since = as_utc(since)
        return sum(
            1
            for r in self._rows["offers"].values()
            if r["user_id"] == user_id and r["accepted"] and as_utc(r["decided_at"]) >= since
        )

    # -- search sessions --
    def get_search_session(self, session_id):
        return self._get("search_sessions", session_id)

    def get_active_search_session(self, user_id):
        for row in self._rows["search_sessions"].values():
            if row["user_id"] == user_id and row["status"] == SessionStatus.RUNNING.value:
                return copy.deepcopy(row)
        return None

    def list_search_sessions(self, user_id, limit=None, since=None):
        rows = self._owned("search_sessions", user_id)
        if since is not None:
            since = as_utc(since)
            rows = [r for r in rows if r["end_time"] is None or as_utc(r["end_time"]) >= since]
        rows.sort(key=lambda r: (r["start_time"], r["id"]), reverse=True)
        return rows[:limit] if limit is not None else rows

    def list_running_search_sessions(self):
        return [
            copy.deepcopy(r)
            for r in self._rows["search_sessions"].values()
            if r["status"] == SessionStatus.RUNNING.value
        ]

    def create_search_session(self, user_id, start_time):
        with self._lock:
            for row in self._rows["search_sessions"].values():
                if row["user_id"] == user_id and row["status"] == SessionStatus.RUNNING.value:
                    raise ActiveSessionExists(f"user {user_id} already has a running session")
            return self._insert(
                "search_sessions",
                {
                    "user_id": user_id,
                    "start_time": start_time,
                    "end_time": None,
                    "status": SessionStatus.RUNNING.value,
                    "offers_found": 0,
                    "offers_accepted": 0,
                },
            )

    def stop_search_session(self, session_id, end_time):
        with self._lock:
            row = self._rows["search_sessions"].get(session_id)
            if not row or row["status"] != SessionStatus.RUNNING.value:
                return None
            row["status"] = SessionStatus.STOPPED.value
            row["end_time"] = end_time
            return copy.deepcopy(row)

    def increment_search_session(self, session_id, found=0, accepted=0):
        with self._lock:
            row = self._rows["search_sessions"].get(session_id)
            if not row:
                return None
            row["offers_found"] += found
            row["offers_accepted"] += accepted
            return copy.deepcopy(row)


class PostgresStorage(Storage):
    """Postgres backend (DATABASE_URL required)."""

    def init(self) -> None:
        db.init_db()

    def get_user(self, user_id):
        return db.get_user_by_id(user_id)

    def get_user_by_username(self, username):
        return db.get_user_by_username(username)

    def create_user(self, username, password_hash, **fields):
        try:
            return db.create_user(username, password_hash, **_pick(fields, _USER_FIELDS))
        except db.UniqueViolation as exc:
            raise StorageConflict(f"username already exists: {username}") from exc

    def update_user(self, user_id, data):
        return db.update_user(user_id, _pick(data, _USER_FIELDS))

    def create_login_session(self, token, user_id, expires_at):
        return db.create_login_session(token, user_id, expires_at)

    def get_login_session(self, token):
        return db.get_login_session(token)

    def touch_login_session(self, token, expires_at):
        db.touch_login_session(token, expires_at)

    def delete_login_session(self, token):
        db.delete_login_session(token)

    def list_location_settings(self, user_id):
        return db.get_location_settings(user_id)

    def get_location_setting(self, location_id):
        return db.get_location_setting(location_id)

    def create_location_setting(self, user_id, data):
        try:
            return db.create_location_setting(user_id, _pick(data, _LOCATION_FIELDS))
        except db.UniqueViolation as exc:
            raise StorageConflict(f"location already configured: {data.get('code')}") from exc

    def update_location_setting(self, location_id, data):
        return db.update_location_setting(location_id, _pick(data, _LOCATION_FIELDS))

    def delete_location_setting(self, location_id):
        return db.delete_location_setting(location_id)

    def get_search_settings(self, user_id):
        return db.get_search_settings(user_id)

    def create_search_settings(self, user_id, data):
        try:
            return db.create_search_settings(user_id, _pick(data, _SETTINGS_FIELDS))
        except db.UniqueViolation as exc:
            raise StorageConflict(f"search settings already exist for user {user_id}") from exc

    def update_search_settings(self, user_id, data):
        return db.update_search_settings(user_id, _pick(data, _SETTINGS_FIELDS))

    def create_activity_log(self, user_id, action, details=""):
        return db.create_activity_log(user_id, str(action), details)

    def list_activity_logs(self, user_id, limit=100):
        return db.get_activity_logs(user_id, limit)

    def create_offer(self, user_id, data):
        return db.create_offer(user_id, _pick(data, _OFFER_FIELDS))

    def list_offers(self, user_id, limit=100):
        return db.get_offers(user_id, limit)

    def count_accepted_offers(self, user_id, since):
        return db.count_accepted_offers(user_id, since)

    def get_search_session(self, session_id):
        return db.get_search_session(session_id)

    def get_active_search_session(self, user_id):
        return db.get_active_search_session(user_id)

    def list_search_sessions(self, user_id, limit=None, since=None):
        return db.get_search_sessions(user_id, limit=limit, since=since)

    def list_running_search_sessions(self):
        return db.get_running_search_sessions()

    def create_search_session(self, user_id, start_time):
        try:
            return db.create_search_session(user_id, start_time)
        except db.UniqueViolation as exc:
            raise ActiveSessionExists(f"user {user_id} already has a running session") from exc

    def stop_search_session(self, session_id, end_time):
        return db.stop_search_session(session_id, end_time)

    def increment_search_session(self, session_id, found=0, accepted=0):
        return db.increment_search_session(session_id, found=found, accepted=accepted)


_storage: Optional[Storage] = None
_storage_lock = threading.Lock()


def _backend_from_env() -> Storage:
    backend = os.getenv("STORAGE_BACKEND", "").strip().lower()
    if not backend:
        backend = "postgres" if os.getenv("DATABASE_URL") else "memory"
    if backend == "postgres":
        return PostgresStorage()
    if backend == "memory":
        return MemStorage()
    raise RuntimeError("STORAGE_BACKEND must be 'memory' or 'postgres'")


def get_storage() -> Storage:
    """Return the configured storage backend, creating it on first use."""
    global _storage
    with _storage_lock:
        if _storage is None:
            _storage = _backend_from_env()
            log.info("Using %s", type(_storage).__name__)
        return _storage


def set_storage(storage: Optional[Storage]) -> None:
    """Swap the backend (tests, embedding). ``None`` resets to the env default."""
    global _storage
    with _storage_lock:
        _storage = storage


__all__ = [
    "ActiveSessionExists",
    "MemStorage",
    "PostgresStorage",
    "Storage",
    "StorageConflict",
    "get_storage",
    "set_storage",
]
