"""
Login session storage helpers.

Expiry policy lives in app.auth_utils; these helpers only read and write rows.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional

from core.db.base import get_conn


def create_login_session(token: str, user_id: int, expires_at: datetime) -> Dict:
    """Insert a new login session row for ``user_id``."""
    now = datetime.now(timezone.utc)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO login_sessions (id, user_id, created_at, last_seen_at, expires_at)
        VALUES (?, ?, ?, ?, ?)
        RETURNING id, user_id, created_at, last_seen_at, expires_at
        """,
        (token, user_id, now, now, expires_at),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row)


def delete_login_session(token: str) -> None:
    """Remove a session from the DB (logout)."""
    if not token:
        return

    conn = get_conn()
    cur = conn.cursor()
    cur.execute("DELETE FROM login_sessions WHERE id = ?", (token,))
    conn.commit()
    conn.close()


def get_login_session(token: str) -> Optional[Dict]:
    if not token:
        return None

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, user_id, created_at, last_seen_at, expires_at
        FROM login_sessions
        WHERE id = ?
        """,
        (token,),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def touch_login_session(token: str, expires_at: datetime) -> None:
    """Slide a session's expiry forward."""
    if not token:
        return

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE login_sessions
        SET last_seen_at = ?, expires_at = ?
        WHERE id = ?
        """,
        (datetime.now(timezone.utc), expires_at, token),
    )
    conn.commit()
    conn.close()


__all__ = [
    "create_login_session",
    "delete_login_session",
    "get_login_session",
    "touch_login_session",
]
