"""
Helpers for session cookies and current-user lookup.
"""
from __future__ import annotations

import os
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from core.flex.models import as_utc
from core.storage import Storage

SESSION_COOKIE_NAME = "session_id"
SESSION_TIMEOUT_MINUTES = 30  # inactivity timeout
SECURE_COOKIES = (
    os.getenv("COOKIE_SECURE", "").lower() in ("1", "true", "yes")
    or os.getenv("PUBLIC_BASE_URL", "").lower().startswith("https://")
)


def _expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=SESSION_TIMEOUT_MINUTES)


def create_session(storage: Storage, user_id: int) -> str:
    """Create a new login session for the given user_id and return its token."""
    token = secrets.token_urlsafe(32)
    storage.create_login_session(token, user_id, _expiry())
    return token


def get_current_user(request: Request, storage: Storage):
    """
    Read session cookie and return (user_dict, session_token) or (None, None).
    Expired sessions are removed; valid ones get their inactivity timeout refreshed.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None, None

    session = storage.get_login_session(token)
    if not session:
        return None, token

    if as_utc(session["expires_at"]) < datetime.now(timezone.utc):
        storage.delete_login_session(token)
        return None, token

    user = storage.get_user(session["user_id"])
    if not user:
        storage.delete_login_session(token)
        return None, token

    storage.touch_login_session(token, _expiry())
    return user, token


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=SESSION_TIMEOUT_MINUTES * 60,
        samesite="lax",
        secure=SECURE_COOKIES,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME)


def not_authenticated() -> JSONResponse:
    return JSONResponse({"message": "Not authenticated"}, status_code=401)


def public_user(user: dict) -> dict:
    """User fields safe to send to the browser."""
    return {
        "id": user["id"],
        "username": user["username"],
        "amazon_email": user.get("amazon_email"),
        "notification_number": user.get("notification_number"),
    }
