"""
User CRUD helpers.
"""
from __future__ import annotations

from typing import Dict, Optional

from core.db.base import get_conn

_USER_COLUMNS = "id, username, password_hash, amazon_email, amazon_password, notification_number, created_at"
_UPDATABLE = ("amazon_email", "amazon_password", "notification_number")


def create_user(username: str, password_hash: str, **fields) -> Dict:
    conn = get_conn()
    cur = conn.cursor()
    try:
        cur.execute(
            f"""
            INSERT INTO users (username, password_hash, amazon_email, amazon_password, notification_number)
            VALUES (?, ?, ?, ?, ?)
            RETURNING {_USER_COLUMNS}
            """,
            (
                username.strip().lower(),
                password_hash,
                fields.get("amazon_email"),
                fields.get("amazon_password"),
                fields.get("notification_number"),
            ),
        )
        row = cur.fetchone()
        conn.commit()
    finally:
        conn.close()
    return dict(row)


def get_user_by_username(username: str) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?",
        ((username or "").strip().lower(),),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_user_by_id(user_id: int) -> Optional[Dict]:
    """Look up a user by numeric id. Returns dict or None."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def update_user(user_id: int, data: Dict) -> Optional[Dict]:
    """Update the linked-account fields. Unknown keys are ignored."""
    fields = {k: v for k, v in data.items() if k in _UPDATABLE}
    if not fields:
        return get_user_by_id(user_id)

    assignments = ", ".join(f"{k} = ?" for k in fields)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"UPDATE users SET {assignments} WHERE id = ? RETURNING {_USER_COLUMNS}",
        (*fields.values(), user_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


__all__ = [
    "create_user",
    "get_user_by_username",
    "get_user_by_id",
    "update_user",
]
