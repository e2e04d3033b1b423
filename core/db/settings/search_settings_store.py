"""
Global search settings, one row per user.
"""
from __future__ import annotations

from typing import Dict, Optional

from psycopg.types.json import Jsonb

from core.db.base import get_conn

_COLUMNS = "id, user_id, strategy, auto_solve_captcha, stop_after_accepted, timezone, schedule"
_WRITABLE = ("strategy", "auto_solve_captcha", "stop_after_accepted", "timezone", "schedule")


def _params(fields: Dict) -> list:
    return [Jsonb(v) if k == "schedule" and v is not None else v for k, v in fields.items()]


def get_search_settings(user_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM search_settings WHERE user_id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def create_search_settings(user_id: int, data: Dict) -> Dict:
    fields = {k: data[k] for k in _WRITABLE if k in data}
    columns = ", ".join(["user_id", *fields])
    placeholders = ", ".join("?" for _ in range(len(fields) + 1))

    conn = get_conn()
    cur = conn.cursor()
    try:
        cur.execute(
            f"INSERT INTO search_settings ({columns}) VALUES ({placeholders}) RETURNING {_COLUMNS}",
            (user_id, *_params(fields)),
        )
        row = cur.fetchone()
        conn.commit()
    finally:
        conn.close()
    return dict(row)


def update_search_settings(user_id: int, data: Dict) -> Optional[Dict]:
    """Update settings in place. Returns None when the user has no settings row yet."""
    fields = {k: data[k] for k in _WRITABLE if k in data}
    if not fields:
        return get_search_settings(user_id)

    assignments = ", ".join(f"{k} = ?" for k in fields)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"UPDATE search_settings SET {assignments} WHERE user_id = ? RETURNING {_COLUMNS}",
        (*_params(fields), user_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


__all__ = [
    "get_search_settings",
    "create_search_settings",
    "update_search_settings",
]
