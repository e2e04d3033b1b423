import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from app.auth_utils import (
    clear_session_cookie,
    create_session,
    get_current_user,
    public_user,
    set_session_cookie,
)
from app.schemas import LoginRequest, RegisterRequest
from app.security import allow_request, allow_request_with_remaining, client_ip
from core.database import hash_password, verify_password
from core.flex.defaults import default_search_settings
from core.flex.models import ActivityAction
from core.storage import StorageConflict, get_storage

router = APIRouter(prefix="/api/auth")
log = logging.getLogger(__name__)


@router.post("/register", status_code=201)
def register(body: RegisterRequest, request: Request, response: Response):
    if not allow_request(f"register:{client_ip(request)}", limit=5, window_seconds=60):
        return JSONResponse({"message": "Too many attempts. Please try again later."}, status_code=429)

    storage = get_storage()
    if storage.get_user_by_username(body.username):
        return JSONResponse({"message": "Username already exists"}, status_code=400)

    try:
        user = storage.create_user(
            body.username,
            hash_password(body.password),
            amazon_email=body.amazon_email,
            amazon_password=body.amazon_password,
            notification_number=body.notification_number,
        )
    except StorageConflict:
        return JSONResponse({"message": "Username already exists"}, status_code=400)

    storage.create_search_settings(user["id"], default_search_settings())
    storage.create_activity_log(user["id"], ActivityAction.ACCOUNT_CREATED.value, "Account created successfully")
    log.info("Account created", extra={"user_id": user["id"]})

    set_session_cookie(response, create_session(storage, user["id"]))
    return {"user": public_user(user)}


@router.post("/login")
def login(body: LoginRequest, request: Request, response: Response):
    allowed, remaining = allow_request_with_remaining(f"login:{client_ip(request)}", limit=10, window_seconds=300)
    if not allowed:
        return JSONResponse({"message": "Too many login attempts. Please try again later."}, status_code=429)

    storage = get_storage()
    user = storage.get_user_by_username(body.username)
    if not user or not verify_password(body.password, user["password_hash"]):
        return JSONResponse(
            {"message": "Invalid username or password", "attempts_left": remaining},
            status_code=401,
        )

    set_session_cookie(response, create_session(storage, user["id"]))
    storage.create_activity_log(user["id"], ActivityAction.USER_LOGIN.value, "User logged in")
    return {"user": public_user(user)}


@router.post("/logout")
def logout(request: Request, response: Response):
    storage = get_storage()
    user, token = get_current_user(request, storage)
    if user:
        storage.create_activity_log(user["id"], ActivityAction.USER_LOGOUT.value, "User logged out")
    if token:
        storage.delete_login_session(token)
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}
