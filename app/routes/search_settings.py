from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.auth_utils import get_current_user, not_authenticated
from app.schemas import SearchSettingsUpdate
from core.flex.defaults import default_search_settings
from core.flex.models import ActivityAction, DaySchedule
from core.storage import get_storage

router = APIRouter(prefix="/api/search-settings")


def _merge_schedule(stored, changes):
    """Days and fields left out of the request keep their stored values."""
    merged = dict(stored or {})
    for day, fields in changes.items():
        merged[day] = DaySchedule(**{**(merged.get(day) or {}), **fields}).model_dump()
    return merged


@router.get("")
def get_search_settings(request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    settings = storage.get_search_settings(user["id"])
    if not settings:
        return JSONResponse({"message": "Search settings not found"}, status_code=404)
    return {"settings": settings}


@router.patch("")
def update_search_settings(body: SearchSettingsUpdate, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    data = body.model_dump(exclude_unset=True, exclude_none=True)
    current = storage.get_search_settings(user["id"])
    if "schedule" in data:
        stored = (current or default_search_settings()).get("schedule")
        data["schedule"] = _merge_schedule(stored, data["schedule"])
    settings = storage.update_search_settings(user["id"], data)
    if settings is None:
        settings = storage.create_search_settings(user["id"], {**default_search_settings(), **data})
        storage.create_activity_log(user["id"], ActivityAction.SEARCH_SETTINGS_CREATED.value, "Search settings created")
        return {"settings": settings}

    storage.create_activity_log(user["id"], ActivityAction.SEARCH_SETTINGS_UPDATED.value, "Search settings updated")
    return {"settings": settings}
