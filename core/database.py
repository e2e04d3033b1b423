"""
Single import point for the Postgres store helpers.
"""
from psycopg.errors import UniqueViolation

from core.db.schema import init_db
from core.db.users import (
    hash_password,
    verify_password,
    create_user,
    get_user_by_username,
    get_user_by_id,
    update_user,
    create_login_session,
    delete_login_session,
    get_login_session,
    touch_login_session,
)
from core.db.settings import (
    get_location_settings,
    get_location_setting,
    create_location_setting,
    update_location_setting,
    delete_location_setting,
    get_search_settings,
    create_search_settings,
    update_search_settings,
)
from core.db.activity import create_activity_log, get_activity_logs
from core.db.search import (
    create_offer,
    get_offers,
    count_accepted_offers,
    get_search_session,
    get_active_search_session,
    get_search_sessions,
    get_running_search_sessions,
    create_search_session,
    stop_search_session,
    increment_search_session,
)

__all__ = [
    "UniqueViolation",
    "init_db",
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
    "get_location_settings",
    "get_location_setting",
    "create_location_setting",
    "update_location_setting",
    "delete_location_setting",
    "get_search_settings",
    "create_search_settings",
    "update_search_settings",
    "create_activity_log",
    "get_activity_logs",
    "create_offer",
    "get_offers",
    "count_accepted_offers",
    "get_search_session",
    "get_active_search_session",
    "get_search_sessions",
    "get_running_search_sessions",
    "create_search_session",
    "stop_search_session",
    "increment_search_session",
]
