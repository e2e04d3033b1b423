"""
Schema helpers for Postgres.
"""
from __future__ import annotations

from core.db.base import get_conn

_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users(
        id SERIAL PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        amazon_email TEXT,
        amazon_password TEXT,
        notification_number TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS login_sessions(
        id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL,
        last_seen_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS location_settings(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        code TEXT NOT NULL,
        name TEXT NOT NULL DEFAULT '',
        address TEXT NOT NULL DEFAULT '',
        is_ulez BOOLEAN NOT NULL DEFAULT FALSE,
        enabled BOOLEAN NOT NULL DEFAULT TRUE,
        min_pay INTEGER NOT NULL DEFAULT 0 CHECK (min_pay >= 0),
        min_hourly_pay INTEGER NOT NULL DEFAULT 0 CHECK (min_hourly_pay >= 0),
        arrival_buffer DOUBLE PRECISION NOT NULL DEFAULT 60 CHECK (arrival_buffer >= 0),
        min_shift_duration DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (min_shift_duration >= 0),
        max_shift_duration DOUBLE PRECISION NOT NULL DEFAULT 24 CHECK (max_shift_duration >= 0),
        CHECK (min_shift_duration <= max_shift_duration),
        UNIQUE(user_id, code)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS search_settings(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        strategy TEXT NOT NULL DEFAULT 'steady',
        auto_solve_captcha BOOLEAN NOT NULL DEFAULT TRUE,
        stop_after_accepted BOOLEAN NOT NULL DEFAULT FALSE,
        timezone TEXT NOT NULL DEFAULT 'Etc/Greenwich',
        schedule JSONB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS activity_logs(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        action TEXT NOT NULL,
        details TEXT,
        timestamp TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS search_sessions(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        start_time TIMESTAMPTZ NOT NULL DEFAULT now(),
        end_time TIMESTAMPTZ,
        status TEXT NOT NULL DEFAULT 'running',
        offers_found INTEGER NOT NULL DEFAULT 0,
        offers_accepted INTEGER NOT NULL DEFAULT 0
    )
    """,
    # Offers keep their own copy of the location fields; no FK to location_settings.
    """
    CREATE TABLE IF NOT EXISTS offers(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        session_id INTEGER REFERENCES search_sessions(id) ON DELETE SET NULL,
        location_code TEXT NOT NULL,
        location_name TEXT NOT NULL DEFAULT '',
        location_address TEXT NOT NULL DEFAULT '',
        is_ulez BOOLEAN NOT NULL DEFAULT FALSE,
        pay INTEGER NOT NULL,
        start_time TIMESTAMPTZ NOT NULL,
        end_time TIMESTAMPTZ NOT NULL,
        duration_hours DOUBLE PRECISION NOT NULL,
        hourly_rate INTEGER NOT NULL,
        accepted BOOLEAN NOT NULL DEFAULT FALSE,
        reason TEXT,
        decided_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
]

_INDEXES = [
    # At most one running session per user.
    """
    CREATE UNIQUE INDEX IF NOT EXISTS search_sessions_one_running
    ON search_sessions(user_id) WHERE status = 'running'
    """,
    "CREATE INDEX IF NOT EXISTS offers_user_decided ON offers(user_id, decided_at DESC)",
    "CREATE INDEX IF NOT EXISTS activity_logs_user_ts ON activity_logs(user_id, timestamp DESC)",
]


def init_db() -> None:
    """Create every table and index if missing."""
    conn = get_conn()
    cur = conn.cursor()
    for ddl in _TABLES + _INDEXES:
        cur.execute(ddl)
    conn.commit()
    conn.close()


__all__ = ["init_db"]
