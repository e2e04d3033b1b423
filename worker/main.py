"""
Background search loop.

Every tick: for each running search session, fetch the offers visible on
Flex (respecting the user's schedule and strategy cadence), run the matcher
and record each decision on the session.
"""
import asyncio
import logging
import os
from datetime import datetime
from typing import Callable, Dict, Optional

from dotenv import load_dotenv

from core.flex.lifecycle import SearchSessionService
from core.flex.matcher import evaluate
from core.flex.models import Decision, SearchPreferences, SessionStatus, as_utc, utcnow
from core.flex.schedule import is_within_schedule, poll_interval
from core.flex.service import FlexCredentials, FlexService
from core.storage import Storage, get_storage

# Load `.env` for local/dev runs (override=True so updates take effect after restart).
load_dotenv(override=True)

# -------- CONFIG --------
CHECK_INTERVAL = int(os.getenv("CHECK_INTERVAL", "5"))  # seconds between ticks
# Default to test mode; set TEST_MODE=false once a real Flex client exists.
TEST_MODE = os.getenv("TEST_MODE", "true").lower() == "true"
# ------------------------

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("worker")

# user_id -> logged-in Flex client
_services: Dict[int, FlexService] = {}
# user_id -> last time the platform was polled
_last_poll: Dict[int, datetime] = {}


def _default_service_factory() -> FlexService:
    return FlexService(test_mode=TEST_MODE)


async def _service_for(
    user: Dict,
    preferences: SearchPreferences,
    factory: Callable[[], FlexService],
) -> FlexService:
    service = _services.get(user["id"])
    if service is None:
        service = factory()
        await service.login(FlexCredentials(email=user["amazon_email"] or "", password=user.get("amazon_password") or ""))
        _services[user["id"]] = service
    if not service.is_search_active() or service.preferences != preferences:
        await service.start_search(preferences)
    return service


async def _release_idle_services(running_user_ids) -> None:
    """Log out of Flex for users whose search has been stopped."""
    for user_id in list(_services):
        if user_id in running_user_ids:
            continue
        service = _services.pop(user_id)
        _last_poll.pop(user_id, None)
        await service.logout()


def _due(user_id: int, strategy: str, now: datetime) -> bool:
    last = _last_poll.get(user_id)
    return last is None or (now - last).total_seconds() >= poll_interval(strategy)


async def search_session_once(
    storage: Storage,
    session: Dict,
    now: datetime,
    factory: Callable[[], FlexService] = _default_service_factory,
) -> int:
    """
    Run one search for one running session.
    Returns the number of offers accepted.
    """
    user_id = session["user_id"]
    user = storage.get_user(user_id)
    if not user or not user.get("amazon_email"):
        log.warning("Running session without a linked Flex account", extra={"user_id": user_id})
        return 0

    preferences = SearchPreferences.from_rows(
        storage.get_search_settings(user_id),
        storage.list_location_settings(user_id),
    )
    if not is_within_schedule(preferences.schedule, preferences.timezone, now):
        log.debug("Outside schedule", extra={"user_id": user_id})
        return 0
    if not _due(user_id, preferences.strategy, now):
        return 0

    service = await _service_for(user, preferences, factory)
    _last_poll[user_id] = now
    result = await service.perform_search(now)
    if result.error:
        log.warning("Search failed", extra={"user_id": user_id, "error": result.error})
        return 0

    lifecycle = SearchSessionService(storage)
    accepted = 0
    for candidate in result.shifts:
        decision = evaluate(preferences, candidate, now)
        if decision.accept and not await service.accept_shift(candidate):
            log.warning("Offer taken before it could be accepted", extra={"user_id": user_id, "location": candidate.location_code})
            decision = Decision(accept=False, reason=decision.reason)

        session = lifecycle.record_decision(session, candidate, decision, preferences=preferences, now=now)
        if decision.accept:
            accepted += 1
        if session is None or session["status"] != SessionStatus.RUNNING.value:
            service.stop_search()
            break

    log.info(
        "Search complete",
        extra={"user_id": user_id, "found": len(result.shifts), "accepted": accepted},
    )
    return accepted


async def run_once(
    storage: Optional[Storage] = None,
    now: Optional[datetime] = None,
    factory: Callable[[], FlexService] = _default_service_factory,
) -> int:
    """
    Do one full tick over every running session.
    Returns the number of offers accepted.
    """
    storage = storage or get_storage()
    now = as_utc(now) if now else utcnow()

    sessions = storage.list_running_search_sessions()
    await _release_idle_services({s["user_id"] for s in sessions})
    if not sessions:
        log.debug("No running searches.")
        return 0

    accepted = 0
    for session in sessions:
        try:
            accepted += await search_session_once(storage, session, now, factory)
        except Exception as e:
            log.exception("Search failed for session", extra={"session_id": session["id"], "error": str(e)})
    return accepted


async def main():
    storage = get_storage()
    storage.init()

    while True:
        try:
            await run_once(storage)
        except Exception as e:
            log.exception("Error during run", extra={"error": str(e)})

        if TEST_MODE:
            break

        await asyncio.sleep(CHECK_INTERVAL)


if __name__ == "__main__":
    asyncio.run(main())
