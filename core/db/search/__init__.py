"""
Search session and offer storage re-exports.
"""
from core.db.search.offers_store import (
    create_offer,
    get_offers,
    count_accepted_offers,
)
from core.db.search.search_sessions_store import (
    get_search_session,
    get_active_search_session,
    get_search_sessions,
    get_running_search_sessions,
    create_search_session,
    stop_search_session,
    increment_search_session,
)

__all__ = [
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
