import re
from urllib.parse import unquote

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.auth_utils import get_current_user, not_authenticated, public_user
from app.schemas import AmazonAuthRequest, UserUpdate
from core.flex.models import ActivityAction
from core.storage import get_storage

router = APIRouter(prefix="/api")

# The Flex sign-in redirect carries the account id as ...openid.identity=...id%2F<account>&...
_ACCOUNT_ID_RE = re.compile(r"id%2F([^&]+)")


def extract_amazon_account_id(auth_url: str) -> str:
    """Return the Flex account id embedded in a sign-in redirect URL, or ''."""
    match = _ACCOUNT_ID_RE.search(auth_url or "")
    if not match:
        return ""
    return unquote(match.group(1)).strip()


@router.get("/user")
def get_user(request: Request):
    user, _ = get_current_user(request, get_storage())
    if not user:
        return not_authenticated()
    return {"user": public_user(user)}


@router.patch("/user")
def update_user(body: UserUpdate, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    updated = storage.update_user(user["id"], body.model_dump(exclude_unset=True))
    if not updated:
        return JSONResponse({"message": "User not found"}, status_code=404)

    storage.create_activity_log(user["id"], ActivityAction.USER_UPDATED.value, "User information updated")
    return {"user": public_user(updated)}


@router.post("/amazon/auth")
def link_amazon_account(body: AmazonAuthRequest, request: Request):
    storage = get_storage()
    user, _ = get_current_user(request, storage)
    if not user:
        return not_authenticated()

    account_id = extract_amazon_account_id(body.amazon_auth_url)
    if not account_id:
        return JSONResponse({"message": "Could not extract Amazon user ID from URL"}, status_code=400)

    updated = storage.update_user(user["id"], {"amazon_email": account_id})
    storage.create_activity_log(
        user["id"],
        ActivityAction.AMAZON_ACCOUNT_LINKED.value,
        "Amazon Flex account successfully linked",
    )
    return {"success": True, "user": public_user(updated)}
