"""Domain models for shift matching and search sessions."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

STRATEGY_SHORT_BURST = "short-burst"
STRATEGY_STEADY = "steady"
DEFAULT_TIMEZONE = "Etc/Greenwich"

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchReason(str, Enum):
    MATCHED = "MATCHED"
    LOCATION_NOT_CONFIGURED = "LOCATION_NOT_CONFIGURED"
    PAY_TOO_LOW = "PAY_TOO_LOW"
    HOURLY_RATE_TOO_LOW = "HOURLY_RATE_TOO_LOW"
    DURATION_OUT_OF_RANGE = "DURATION_OUT_OF_RANGE"
    INSUFFICIENT_LEAD_TIME = "INSUFFICIENT_LEAD_TIME"


class ActivityAction(str, Enum):
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_UPDATED = "USER_UPDATED"
    AMAZON_ACCOUNT_LINKED = "AMAZON_ACCOUNT_LINKED"
    LOCATION_ADDED = "LOCATION_ADDED"
    LOCATION_UPDATED = "LOCATION_UPDATED"
    LOCATION_DELETED = "LOCATION_DELETED"
    SEARCH_SETTINGS_CREATED = "SEARCH_SETTINGS_CREATED"
    SEARCH_SETTINGS_UPDATED = "SEARCH_SETTINGS_UPDATED"
    SEARCH_STARTED = "SEARCH_STARTED"
    SEARCH_STOPPED = "SEARCH_STOPPED"
    OFFER_FOUND = "OFFER_FOUND"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"


class SessionStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class LocationPreference(BaseModel):
    """Acceptance thresholds for one delivery station.

    Pay values are minor currency units (pence), the arrival buffer is in
    minutes and shift durations are in hours.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    name: str = ""
    address: str = ""
    is_ulez: bool = False
    enabled: bool = True
    min_pay: int = Field(default=0, ge=0)
    min_hourly_pay: int = Field(default=0, ge=0)
    arrival_buffer: float = Field(default=60, ge=0)
    min_shift_duration: float = Field(default=0, ge=0)
    max_shift_duration: float = Field(default=24, ge=0)

    @field_validator("code")
    @classmethod
    def code_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "location code must not be empty"
            raise ValueError(msg)
        return v.strip()

    @model_validator(mode="after")
    def duration_window(self) -> "LocationPreference":
        if self.min_shift_duration > self.max_shift_duration:
            msg = "min_shift_duration must not exceed max_shift_duration"
            raise ValueError(msg)
        return self


class DaySchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    start_time: str = "00:00"
    end_time: str = "23:59"

    @field_validator("start_time", "end_time")
    @classmethod
    def hh_mm(cls, v: str) -> str:
        v = v.strip()
        if not _TIME_RE.match(v):
            msg = f"time must be HH:MM, got {v!r}"
            raise ValueError(msg)
        return v


class SearchPreferences(BaseModel):
    """Everything the matcher and the worker need for one user."""

    model_config = ConfigDict(frozen=True)

    locations: List[LocationPreference] = Field(default_factory=list)
    strategy: Literal["short-burst", "steady"] = STRATEGY_STEADY
    auto_solve_captcha: bool = True
    stop_after_accepted: bool = False
    schedule: Dict[str, DaySchedule] = Field(default_factory=dict)
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("strategy", mode="before")
    @classmethod
    def legacy_short(cls, v):
        # Older clients send "short".
        return STRATEGY_SHORT_BURST if v == "short" else v

    @field_validator("schedule", mode="before")
    @classmethod
    def lower_weekdays(cls, v):
        if isinstance(v, Mapping):
            return {str(k).lower(): day for k, day in v.items()}
        return v

    @classmethod
    def from_rows(
        cls,
        settings: Optional[Mapping],
        locations: Iterable[Mapping],
    ) -> "SearchPreferences":
        """Build preferences from stored search settings and location rows."""
        settings = dict(settings or {})
        return cls(
            locations=[
                LocationPreference.model_validate(
                    {k: v for k, v in loc.items() if k in LocationPreference.model_fields}
                )
                for loc in locations
            ],
            strategy=settings.get("strategy") or STRATEGY_STEADY,
            auto_solve_captcha=bool(settings.get("auto_solve_captcha", True)),
            stop_after_accepted=bool(settings.get("stop_after_accepted", False)),
            schedule=settings.get("schedule") or {},
            timezone=settings.get("timezone") or DEFAULT_TIMEZONE,
        )


class CandidateOffer(BaseModel):
    """A shift offered by the platform, before any decision is recorded.

    ``duration_hours`` and ``hourly_rate`` are derived from the start/end
    times and pay when the source does not supply them.
    """

    location_code: str
    location_name: str = ""
    location_address: str = ""
    is_ulez: bool = False
    pay: int = Field(ge=0)
    start_time: datetime
    end_time: datetime
    duration_hours: Optional[float] = Field(default=None, ge=0)
    hourly_rate: Optional[int] = Field(default=None, ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def derive_rates(self) -> "CandidateOffer":
        if self.end_time < self.start_time:
            msg = "end_time must not precede start_time"
            raise ValueError(msg)
        if self.duration_hours is None:
            self.duration_hours = (self.end_time - self.start_time).total_seconds() / 3600
        if self.hourly_rate is None:
            self.hourly_rate = round(self.pay / self.duration_hours) if self.duration_hours else 0
        return self


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    accept: bool
    reason: MatchReason
