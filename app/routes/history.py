from fastapi import APIRouter, Query, Request

from app.auth_utils import get_current_user, not_authenticated
from core.storage import get_storage

router = APIRouter(prefix="/api")


@router.get("/activity-logs")
def activity_logs(request: Request, limit: int = Query(100, ge=1, le=1000)):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()
    return {"logs": storage.list_activity_logs(user["id"], limit)}


@router.get("/offers")
def offers(request: Request, limit: int = Query(100, ge=1, le=1000)):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()
    return {"offers": storage.list_offers(user["id"], limit)}


@router.get("/search-sessions")
def search_sessions(request: Request, limit: int = Query(50, ge=1, le=500)):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()
    return {"sessions": storage.list_search_sessions(user["id"], limit=limit)}
