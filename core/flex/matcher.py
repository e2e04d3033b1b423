"""
Decide whether an offered shift should be accepted.

Checks run in a fixed order and the first failing check is the rejection
reason. A rejection is a normal return value, never an exception.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from core.flex.models import (
    CandidateOffer,
    Decision,
    LocationPreference,
    MatchReason,
    SearchPreferences,
    as_utc,
)


def find_location(preferences: SearchPreferences, code: str) -> Optional[LocationPreference]:
    """Return the first enabled preference for ``code``, or None."""
    for loc in preferences.locations:
        if loc.code == code and loc.enabled:
            return loc
    return None


def minutes_until_start(candidate: CandidateOffer, now: datetime) -> float:
    """Fractional minutes between ``now`` and the shift start (negative once started)."""
    return (as_utc(candidate.start_time) - as_utc(now)).total_seconds() / 60


def _failed_checks(pref: LocationPreference, candidate: CandidateOffer, now: datetime) -> List[MatchReason]:
    failed: List[MatchReason] = []
    if candidate.pay < pref.min_pay:
        failed.append(MatchReason.PAY_TOO_LOW)
    if candidate.hourly_rate < pref.min_hourly_pay:
        failed.append(MatchReason.HOURLY_RATE_TOO_LOW)
    if not (pref.min_shift_duration <= candidate.duration_hours <= pref.max_shift_duration):
        failed.append(MatchReason.DURATION_OUT_OF_RANGE)
    if minutes_until_start(candidate, now) < pref.arrival_buffer:
        failed.append(MatchReason.INSUFFICIENT_LEAD_TIME)
    return failed


def evaluate(preferences: SearchPreferences, candidate: CandidateOffer, now: datetime) -> Decision:
    """Evaluate one candidate against the user's preferences at instant ``now``."""
    pref = find_location(preferences, candidate.location_code)
    if pref is None:
        return Decision(accept=False, reason=MatchReason.LOCATION_NOT_CONFIGURED)

    if candidate.pay < pref.min_pay:
        return Decision(accept=False, reason=MatchReason.PAY_TOO_LOW)

    if candidate.hourly_rate < pref.min_hourly_pay:
        return Decision(accept=False, reason=MatchReason.HOURLY_RATE_TOO_LOW)

    if (
        candidate.duration_hours < pref.min_shift_duration
        or candidate.duration_hours > pref.max_shift_duration
    ):
        return Decision(accept=False, reason=MatchReason.DURATION_OUT_OF_RANGE)

    if minutes_until_start(candidate, now) < pref.arrival_buffer:
        return Decision(accept=False, reason=MatchReason.INSUFFICIENT_LEAD_TIME)

    return Decision(accept=True, reason=MatchReason.MATCHED)


def rejection_reasons(
    preferences: SearchPreferences,
    candidate: CandidateOffer,
    now: datetime,
) -> List[MatchReason]:
    """
    Run every check independently and return all failures, in check order.
    An empty list means the candidate matches.
    """
    pref = find_location(preferences, candidate.location_code)
    if pref is None:
        return [MatchReason.LOCATION_NOT_CONFIGURED]
    return _failed_checks(pref, candidate, now)


__all__ = [
    "evaluate",
    "find_location",
    "minutes_until_start",
    "rejection_reasons",
]
