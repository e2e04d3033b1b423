"""
Location and search settings storage re-exports.
"""
from core.db.settings.location_store import (
    get_location_settings,
    get_location_setting,
    create_location_setting,
    update_location_setting,
    delete_location_setting,
)
from core.db.settings.search_settings_store import (
    get_search_settings,
    create_search_settings,
    update_search_settings,
)

__all__ = [
    "get_location_settings",
    "get_location_setting",
    "create_location_setting",
    "update_location_setting",
    "delete_location_setting",
    "get_search_settings",
    "create_search_settings",
    "update_search_settings",
]
