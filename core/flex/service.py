"""
Amazon Flex automation collaborator.

There is no browser automation behind this yet: every step logs what it
would do and returns a canned result. In test mode ``perform_search``
returns a fixed set of fake shifts so the worker can be exercised end to end.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field

from core.flex.models import CandidateOffer, SearchPreferences, as_utc, utcnow
from core.flex.schedule import poll_interval

log = logging.getLogger(__name__)


class FlexServiceError(Exception):
    """The service was used before logging in or configuring a search."""


@dataclass(frozen=True)
class FlexCredentials:
    email: str
    password: str = ""


class ShiftSearchResult(BaseModel):
    shifts: List[CandidateOffer] = Field(default_factory=list)
    accepted_shift: Optional[CandidateOffer] = None
    error: Optional[str] = None


def fake_shifts(now: datetime) -> List[CandidateOffer]:
    """Shifts used when running in test mode."""
    now = as_utc(now).replace(second=0, microsecond=0)
    return [
        CandidateOffer(
            location_code="DXN1",
            location_name="West Drayton",
            location_address="Amazon Logistics ULEZ (UB7 9FN)",
            is_ulez=True,
            pay=5500,
            start_time=now + timedelta(minutes=90),
            end_time=now + timedelta(minutes=90, hours=3.5),
        ),
        CandidateOffer(
            location_code="DHA2",
            location_name="Wembley",
            location_address="Amazon Logistics (NW10 0UX) ULEZ",
            is_ulez=True,
            pay=3600,
            start_time=now + timedelta(minutes=30),
            end_time=now + timedelta(minutes=30, hours=3),
        ),
        CandidateOffer(
            location_code="CU73",
            location_name="High Wycombe",
            location_address="Morrisons (HP13 5XX)",
            pay=7200,
            start_time=now + timedelta(hours=4),
            end_time=now + timedelta(hours=8),
        ),
    ]


class FlexService:
    """One instance per linked Flex account."""

    def __init__(self, test_mode: bool = False):
        self.test_mode = test_mode
        self.credentials: Optional[FlexCredentials] = None
        self.preferences: Optional[SearchPreferences] = None
        self._logged_in = False
        self._search_active = False

    @property
    def is_logged_in(self) -> bool:
        return self._logged_in

    @property
    def refresh_interval(self) -> int:
        strategy = self.preferences.strategy if self.preferences else "steady"
        return poll_interval(strategy)

    async def login(self, credentials: FlexCredentials) -> bool:
        # Would drive the Flex sign-in page and handle MFA here.
        self.credentials = credentials
        self._logged_in = True
        log.info("Flex login", extra={"account": credentials.email})
        return True

    async def logout(self) -> bool:
        self.stop_search()
        if self.credentials:
            log.info("Flex logout", extra={"account": self.credentials.email})
        self.credentials = None
        self._logged_in = False
        return True

    async def start_search(self, preferences: SearchPreferences) -> bool:
        if not self._logged_in:
            raise FlexServiceError("Not logged in to Amazon Flex")
        self.preferences = preferences
        self._search_active = True
        log.info(
            "Flex search started",
            extra={"strategy": preferences.strategy, "refresh_seconds": self.refresh_interval},
        )
        return True

    def stop_search(self) -> None:
        if self._search_active:
            log.info("Flex search stopped")
        self._search_active = False

    def is_search_active(self) -> bool:
        return self._search_active

    async def perform_search(self, now: Optional[datetime] = None) -> ShiftSearchResult:
        """Fetch the offers currently visible on the platform."""
        if not self._logged_in or self.preferences is None:
            raise FlexServiceError("Cannot perform search: not logged in or no preferences set")

        if self.test_mode:
            shifts = fake_shifts(now or utcnow())
            log.info("TEST_MODE: using fake shifts", extra={"count": len(shifts)})
            return ShiftSearchResult(shifts=shifts)

        # Would open the offers page and scrape the listed blocks here.
        return ShiftSearchResult(shifts=[])

    async def accept_shift(self, candidate: CandidateOffer) -> bool:
        """Claim the shift on the platform. Returns False if it was taken first."""
        if not self._logged_in:
            raise FlexServiceError("Not logged in to Amazon Flex")
        if self.preferences and self.preferences.auto_solve_captcha:
            await self.solve_captcha()
        log.info(
            "Accepting shift",
            extra={"location": candidate.location_code, "pay": candidate.pay, "start": candidate.start_time.isoformat()},
        )
        return True

    async def solve_captcha(self) -> bool:
        # Would detect the captcha and hand it to a solver here.
        log.debug("Captcha check skipped; no solver configured")
        return True


__all__ = [
    "FlexCredentials",
    "FlexService",
    "FlexServiceError",
    "ShiftSearchResult",
    "fake_shifts",
]
