"""
Search session lifecycle: start, stop, record decisions, report status.

NONE -> RUNNING -> STOPPED, with at most one RUNNING session per user.
Every transition writes one activity log entry.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from core.flex.models import (
    ActivityAction,
    CandidateOffer,
    Decision,
    SearchPreferences,
    SessionStatus,
    as_utc,
    utcnow,
)
from core.flex.schedule import start_of_day, start_of_week
from core.storage import ActiveSessionExists, Storage

log = logging.getLogger(__name__)


class SessionStateError(Exception):
    """A start/stop request that is not valid in the current state."""

    ALREADY_RUNNING = "ALREADY_RUNNING"
    NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"

    _MESSAGES = {
        ALREADY_RUNNING: "Search is already running",
        NO_ACTIVE_SESSION: "No active search to stop",
    }

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or self._MESSAGES.get(code, code))


def _offer_row(
    session: Dict,
    candidate: CandidateOffer,
    decision: Decision,
    preferences: Optional[SearchPreferences],
    now: datetime,
) -> Dict:
    name, address, is_ulez = candidate.location_name, candidate.location_address, candidate.is_ulez
    # Copy the configured station details so history survives the preference being deleted.
    for loc in (preferences.locations if preferences else []):
        if loc.code == candidate.location_code:
            name = name or loc.name
            address = address or loc.address
            is_ulez = is_ulez or loc.is_ulez
            break
    return {
        "session_id": session["id"],
        "location_code": candidate.location_code,
        "location_name": name,
        "location_address": address,
        "is_ulez": is_ulez,
        "pay": candidate.pay,
        "start_time": candidate.start_time,
        "end_time": candidate.end_time,
        "duration_hours": candidate.duration_hours,
        "hourly_rate": candidate.hourly_rate,
        "accepted": decision.accept,
        "reason": decision.reason.value,
        "decided_at": now,
    }


def _money(minor: int) -> str:
    return f"£{minor / 100:.2f}"


class SearchSessionService:
    """Session transitions over an injected storage backend."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def start_session(self, user_id: int, now: Optional[datetime] = None) -> Dict:
        now = as_utc(now) if now else utcnow()
        if self.storage.get_active_search_session(user_id):
            raise SessionStateError(SessionStateError.ALREADY_RUNNING)
        try:
            session = self.storage.create_search_session(user_id, start_time=now)
        except ActiveSessionExists as exc:
            raise SessionStateError(SessionStateError.ALREADY_RUNNING) from exc

        self.storage.create_activity_log(user_id, ActivityAction.SEARCH_STARTED.value, "Amazon Flex search started")
        log.info("Search started", extra={"user_id": user_id, "session_id": session["id"]})
        return session

    def stop_session(self, user_id: int, now: Optional[datetime] = None) -> Dict:
        now = as_utc(now) if now else utcnow()
        active = self.storage.get_active_search_session(user_id)
        if not active:
            raise SessionStateError(SessionStateError.NO_ACTIVE_SESSION)
        return self._stop(active, now, "Amazon Flex search stopped")

    def _stop(self, session: Dict, now: datetime, details: str) -> Dict:
        stopped = self.storage.stop_search_session(session["id"], end_time=now)
        if stopped is None:
            # Another request stopped it first.
            raise SessionStateError(SessionStateError.NO_ACTIVE_SESSION)
        self.storage.create_activity_log(session["user_id"], ActivityAction.SEARCH_STOPPED.value, details)
        log.info(
            "Search stopped",
            extra={
                "user_id": session["user_id"],
                "session_id": session["id"],
                "offers_found": stopped["offers_found"],
                "offers_accepted": stopped["offers_accepted"],
            },
        )
        return stopped

    def record_decision(
        self,
        session: Dict,
        candidate: CandidateOffer,
        decision: Decision,
        preferences: Optional[SearchPreferences] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Dict]:
        """
        Fold one decision into a running session and persist the offer.

        Returns the updated session row. Decisions against a session that
        is no longer running are not recorded; None if the session row is gone.
        """
        now = as_utc(now) if now else utcnow()
        current = self.storage.get_search_session(session["id"])
        if not current or current["status"] != SessionStatus.RUNNING.value:
            log.debug("Ignoring decision for inactive session", extra={"session_id": session["id"]})
            return current

        user_id = current["user_id"]
        self.storage.create_offer(user_id, _offer_row(current, candidate, decision, preferences, now))
        updated = self.storage.increment_search_session(
            current["id"], found=1, accepted=1 if decision.accept else 0
        )

        where = candidate.location_name or candidate.location_code
        if not decision.accept:
            self.storage.create_activity_log(
                user_id,
                ActivityAction.OFFER_FOUND.value,
                f"Offer at {where} for {_money(candidate.pay)} skipped: {decision.reason.value}",
            )
            return updated

        self.storage.create_activity_log(
            user_id,
            ActivityAction.OFFER_ACCEPTED.value,
            f"Accepted offer at {where} for {_money(candidate.pay)} starting {candidate.start_time.isoformat()}",
        )
        log.info("Offer accepted", extra={"user_id": user_id, "session_id": current["id"], "location": candidate.location_code})

        if preferences is not None:
            stop_after = preferences.stop_after_accepted
        else:
            settings = self.storage.get_search_settings(user_id) or {}
            stop_after = bool(settings.get("stop_after_accepted"))

        if stop_after:
            return self._stop(updated, now, "Search stopped after accepting an offer")
        return updated

    def get_status(self, user_id: int, timezone: Optional[str] = None, now: Optional[datetime] = None) -> Dict:
        """
        Current search status plus two rollups: minutes searched today
        (across all sessions) and offers accepted since the start of the week.
        """
        now = as_utc(now) if now else utcnow()
        if timezone is None:
            settings = self.storage.get_search_settings(user_id) or {}
            timezone = settings.get("timezone")

        day_start = start_of_day(now, timezone)
        seconds = 0.0
        for s in self.storage.list_search_sessions(user_id, since=day_start):
            started = max(as_utc(s["start_time"]), day_start)
            ended = min(as_utc(s["end_time"]) if s["end_time"] else now, now)
            if ended > started:
                seconds += (ended - started).total_seconds()

        active = self.storage.get_active_search_session(user_id)
        return {
            "is_active": active is not None,
            "session": active,
            "stats": {
                "search_time_today": int(seconds // 60),
                "accepted_shifts_this_week": self.storage.count_accepted_offers(
                    user_id, since=start_of_week(now, timezone)
                ),
            },
        }


__all__ = ["SearchSessionService", "SessionStateError"]
