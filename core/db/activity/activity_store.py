"""
Append-only activity log.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from core.db.base import get_conn


def create_activity_log(user_id: int, action: str, details: str = "") -> Dict:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO activity_logs (user_id, action, details)
        VALUES (?, ?, ?)
        RETURNING id, user_id, action, details, timestamp
        """,
        (user_id, action, details),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row)


def get_activity_logs(user_id: int, limit: Optional[int] = 100) -> List[Dict]:
    """Newest first."""
    conn = get_conn()
    cur = conn.cursor()

    sql = """
        SELECT id, user_id, action, details, timestamp
        FROM activity_logs
        WHERE user_id = ?
        ORDER BY timestamp DESC, id DESC
    """
    if limit is not None:
        sql += " LIMIT ?"
        cur.execute(sql, (user_id, limit))
    else:
        cur.execute(sql, (user_id,))

    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


__all__ = ["create_activity_log", "get_activity_logs"]
