"""
User-related storage helpers, split by responsibility.
"""
from core.db.users.auth import hash_password, verify_password
from core.db.users.user_store import (
    create_user,
    get_user_by_username,
    get_user_by_id,
    update_user,
)
from core.db.users.sessions import (
    create_login_session,
    delete_login_session,
    get_login_session,
    touch_login_session,
)

__all__ = [
    "hash_password",
    "verify_password",
    "create_user",
    "get_user_by_username",
    "get_user_by_id",
    "update_user",
    "create_login_session",
    "delete_login_session",
    "get_login_session",
    "touch_login_session",
]
