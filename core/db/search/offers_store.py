"""
Offer history. Rows are written once, when a decision is recorded.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from core.db.base import get_conn

_COLUMNS = (
    "id, user_id, session_id, location_code, location_name, location_address, is_ulez, "
    "pay, start_time, end_time, duration_hours, hourly_rate, accepted, reason, decided_at"
)
_WRITABLE = (
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


def create_offer(user_id: int, data: Dict) -> Dict:
    fields = {k: data[k] for k in _WRITABLE if k in data}
    columns = ", ".join(["user_id", *fields])
    placeholders = ", ".join("?" for _ in range(len(fields) + 1))

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"INSERT INTO offers ({columns}) VALUES ({placeholders}) RETURNING {_COLUMNS}",
        (user_id, *fields.values()),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row)


def get_offers(user_id: int, limit: Optional[int] = 100) -> List[Dict]:
    """Return a user's offers, newest decision first."""
    conn = get_conn()
    cur = conn.cursor()

    sql = f"""
        SELECT {_COLUMNS}
        FROM offers
        WHERE user_id = ?
        ORDER BY decided_at DESC, id DESC
    """
    if limit is not None:
        sql += " LIMIT ?"
        cur.execute(sql, (user_id, limit))
    else:
        cur.execute(sql, (user_id,))

    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def count_accepted_offers(user_id: int, since: datetime) -> int:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "SELECT COUNT(*) AS count FROM offers WHERE user_id = ? AND accepted AND decided_at >= ?",
        (user_id, since),
    )
    row = cur.fetchone()
    conn.close()
    return int(row["count"]) if row else 0


__all__ = [
    "create_offer",
    "get_offers",
    "count_accepted_offers",
]
