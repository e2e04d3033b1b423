"""
Search session rows (one per start/stop cycle).

The partial unique index ``search_sessions_one_running`` rejects a second
running row for the same user, so create_search_session raises
psycopg.errors.UniqueViolation instead of racing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from core.db.base import get_conn

_COLUMNS = "id, user_id, start_time, end_time, status, offers_found, offers_accepted"


def get_search_session(session_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM search_sessions WHERE id = ?", (session_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_active_search_session(user_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_COLUMNS} FROM search_sessions WHERE user_id = ? AND status = 'running'",
        (user_id,),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_search_sessions(
    user_id: int,
    limit: Optional[int] = None,
    since: Optional[datetime] = None,
) -> List[Dict]:
    """
    Newest first. With ``since``, only sessions still running or that ended
    at or after that instant.
    """
    sql = f"SELECT {_COLUMNS} FROM search_sessions WHERE user_id = ?"
    params: list = [user_id]
    if since is not None:
        sql += " AND (end_time IS NULL OR end_time >= ?)"
        params.append(since)
    sql += " ORDER BY start_time DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_running_search_sessions() -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM search_sessions WHERE status = 'running' ORDER BY id")
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def create_search_session(user_id: int, start_time: datetime) -> Dict:
    conn = get_conn()
    cur = conn.cursor()
    try:
        cur.execute(
            f"""
            INSERT INTO search_sessions (user_id, start_time, status, offers_found, offers_accepted)
            VALUES (?, ?, 'running', 0, 0)
            RETURNING {_COLUMNS}
            """,
            (user_id, start_time),
        )
        row = cur.fetchone()
        conn.commit()
    finally:
        conn.close()
    return dict(row)


def stop_search_session(session_id: int, end_time: datetime) -> Optional[Dict]:
    """Running -> stopped. Returns None if the session was not running."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        UPDATE search_sessions
        SET status = 'stopped', end_time = ?
        WHERE id = ? AND status = 'running'
        RETURNING {_COLUMNS}
        """,
        (end_time, session_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


def increment_search_session(session_id: int, found: int = 0, accepted: int = 0) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        UPDATE search_sessions
        SET offers_found = offers_found + ?, offers_accepted = offers_accepted + ?
        WHERE id = ?
        RETURNING {_COLUMNS}
        """,
        (found, accepted, session_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


__all__ = [
    "get_search_session",
    "get_active_search_session",
    "get_search_sessions",
    "get_running_search_sessions",
    "create_search_session",
    "stop_search_session",
    "increment_search_session",
]
