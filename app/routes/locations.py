from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.auth_utils import get_current_user, not_authenticated
from app.schemas import LocationCreate, LocationUpdate
from core.flex.defaults import default_location_rows
from core.flex.models import ActivityAction, LocationPreference
from core.storage import StorageConflict, get_storage

router = APIRouter(prefix="/api/locations")


def _invalid(exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": "Invalid input", "errors": exc.errors(include_url=False, include_context=False)},
        status_code=400,
    )


def _owned_location(storage, user, location_id: int):
    location = storage.get_location_setting(location_id)
    if not location or location["user_id"] != user["id"]:
        return None
    return location


@router.get("")
def list_locations(request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()
    return {"locations": storage.list_location_settings(user["id"])}


@router.post("", status_code=201)
def create_location(body: LocationCreate, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    try:
        location = storage.create_location_setting(user["id"], body.model_dump())
    except StorageConflict:
        return JSONResponse({"message": f"Location {body.code} is already configured"}, status_code=400)

    storage.create_activity_log(user["id"], ActivityAction.LOCATION_ADDED.value, f"Location added: {location['name'] or location['code']}")
    return {"location": location}


@router.post("/defaults", status_code=201)
def add_default_locations(request: Request):
    """Add the starter stations the user does not have yet."""
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    existing = {loc["code"] for loc in storage.list_location_settings(user["id"])}
    added = []
    for row in default_location_rows():
        if row["code"] in existing:
            continue
        added.append(storage.create_location_setting(user["id"], row))

    if added:
        storage.create_activity_log(
            user["id"],
            ActivityAction.LOCATION_ADDED.value,
            "Default locations added: " + ", ".join(loc["code"] for loc in added),
        )
    return {"locations": added}


@router.patch("/{location_id}")
def update_location(location_id: int, body: LocationUpdate, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    location = _owned_location(storage, user, location_id)
    if not location:
        return JSONResponse({"message": "Location not found"}, status_code=404)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        LocationPreference.model_validate({**location, **changes})
    except ValidationError as exc:
        return _invalid(exc)

    updated = storage.update_location_setting(location_id, changes)
    storage.create_activity_log(user["id"], ActivityAction.LOCATION_UPDATED.value, f"Location updated: {location['name'] or location['code']}")
    return {"location": updated}


@router.delete("/{location_id}")
def delete_location(location_id: int, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    location = _owned_location(storage, user, location_id)
    if not location:
        return JSONResponse({"message": "Location not found"}, status_code=404)

    result = storage.delete_location_setting(location_id)
    storage.create_activity_log(user["id"], ActivityAction.LOCATION_DELETED.value, f"Location deleted: {location['name'] or location['code']}")
    return {"success": result}
