"""
Start/stop the search process and report its status.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.auth_utils import get_current_user, not_authenticated
from core.flex.lifecycle import SearchSessionService, SessionStateError
from core.storage import get_storage

router = APIRouter(prefix="/api/flex")


def _conflict(exc: SessionStateError) -> JSONResponse:
    return JSONResponse({"message": str(exc), "code": exc.code}, status_code=409)


@router.post("/start")
def start_search(request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    if not user.get("amazon_email"):
        return JSONResponse({"message": "Amazon Flex credentials not set"}, status_code=400)
    if not storage.get_search_settings(user["id"]):
        return JSONResponse({"message": "Search settings not found"}, status_code=400)
    if not storage.list_location_settings(user["id"]):
        return JSONResponse({"message": "No locations configured"}, status_code=400)

    try:
        session = SearchSessionService(storage).start_session(user["id"])
    except SessionStateError as exc:
        return _conflict(exc)

    return {"success": True, "session": session, "message": "Search started successfully"}


@router.post("/stop")
def stop_search(request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    try:
        session = SearchSessionService(storage).stop_session(user["id"])
    except SessionStateError as exc:
        return _conflict(exc)

    return {"success": True, "session": session, "message": "Search stopped successfully"}


@router.get("/status")
def search_status(request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()
    return SearchSessionService(storage).get_status(user["id"])
