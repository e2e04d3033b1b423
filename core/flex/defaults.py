"""
Starter data offered to new accounts.
"""
from __future__ import annotations

from typing import Dict, List

from core.flex.models import DEFAULT_TIMEZONE, STRATEGY_STEADY
from core.flex.schedule import default_schedule

# --- West London delivery stations ---
DEFAULT_LOCATIONS = [
    {"code": "DXN1", "name": "West Drayton", "address": "Amazon Logistics ULEZ (UB7 9FN)", "is_ulez": True},
    {"code": "DHA2", "name": "Wembley", "address": "Amazon Logistics (NW10 0UX) ULEZ", "is_ulez": True},
    {"code": "CG13", "name": "Harrow", "address": "Morrisons (HA1 4BB)", "is_ulez": False},
    {"code": "ULO6", "name": "Wembley", "address": "Fresh - ULEZ (NW10 7FW)", "is_ulez": True},
    {"code": "CU06", "name": "Queensbury", "address": "Morrisons ULEZ (NW9 6RN)", "is_ulez": True},
    {"code": "CU73", "name": "High Wycombe", "address": "Morrisons (HP13 5XX)", "is_ulez": False},
    {"code": "DHA1", "name": "Wembley", "address": "Amazon Logistics (NW10 0UP) ULEZ", "is_ulez": True},
]

# £50.00 minimum, £12.00/h, one hour to get there, 2-5 hour blocks.
DEFAULT_THRESHOLDS = {
    "enabled": True,
    "min_pay": 5000,
    "min_hourly_pay": 1200,
    "arrival_buffer": 60,
    "min_shift_duration": 2,
    "max_shift_duration": 5,
}


def default_location_rows() -> List[Dict]:
    return [{**loc, **DEFAULT_THRESHOLDS} for loc in DEFAULT_LOCATIONS]


def default_search_settings() -> Dict:
    return {
        "strategy": STRATEGY_STEADY,
        "auto_solve_captcha": True,
        "stop_after_accepted": False,
        "timezone": DEFAULT_TIMEZONE,
        "schedule": default_schedule(),
    }


__all__ = [
    "DEFAULT_LOCATIONS",
    "DEFAULT_THRESHOLDS",
    "default_location_rows",
    "default_search_settings",
]
