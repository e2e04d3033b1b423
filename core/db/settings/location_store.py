"""
Per-user location preference rows.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from core.db.base import get_conn

_COLUMNS = (
    "id, user_id, code, name, address, is_ulez, enabled, min_pay, min_hourly_pay, "
    "arrival_buffer, min_shift_duration, max_shift_duration"
)
_WRITABLE = (
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


def get_location_settings(user_id: int) -> List[Dict]:
    """Return all of a user's locations, oldest first."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_COLUMNS} FROM location_settings WHERE user_id = ? ORDER BY id",
        (user_id,),
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_location_setting(location_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_COLUMNS} FROM location_settings WHERE id = ?", (location_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def create_location_setting(user_id: int, data: Dict) -> Dict:
    fields = {k: data[k] for k in _WRITABLE if k in data}
    columns = ", ".join(["user_id", *fields])
    placeholders = ", ".join("?" for _ in range(len(fields) + 1))

    conn = get_conn()
    cur = conn.cursor()
    try:
        cur.execute(
            f"INSERT INTO location_settings ({columns}) VALUES ({placeholders}) RETURNING {_COLUMNS}",
            (user_id, *fields.values()),
        )
        row = cur.fetchone()
        conn.commit()
    finally:
        conn.close()
    return dict(row)


def update_location_setting(location_id: int, data: Dict) -> Optional[Dict]:
    fields = {k: data[k] for k in _WRITABLE if k in data}
    if not fields:
        return get_location_setting(location_id)

    assignments = ", ".join(f"{k} = ?" for k in fields)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"UPDATE location_settings SET {assignments} WHERE id = ? RETURNING {_COLUMNS}",
        (*fields.values(), location_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


def delete_location_setting(location_id: int) -> bool:
    """Delete one location row. Offers keep their copied location fields."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("DELETE FROM location_settings WHERE id = ?", (location_id,))
    deleted = cur.rowcount > 0
    conn.commit()
    conn.close()
    return deleted


__all__ = [
    "get_location_settings",
    "get_location_setting",
    "create_location_setting",
    "update_location_setting",
    "delete_location_setting",
]
