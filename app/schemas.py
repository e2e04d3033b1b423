"""
Request bodies for the JSON API.

The SPA sends camelCase keys; snake_case is accepted too.
"""
from __future__ import annotations

from typing import Dict, Literal, Optional

from password_strength import PasswordPolicy
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.flex.models import DaySchedule
from core.flex.schedule import WEEKDAYS, get_zone

# At least 8 characters with one digit and one capital.
password_policy = PasswordPolicy.from_names(length=8, numbers=1, uppercase=1)


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_Body):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=72)
    amazon_email: Optional[str] = Field(default=None, max_length=254)
    amazon_password: Optional[str] = Field(default=None, max_length=128)
    notification_number: Optional[str] = Field(default=None, max_length=30)

    @field_validator("username")
    @classmethod
    def no_spaces(cls, v: str) -> str:
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            msg = "username must not contain whitespace"
            raise ValueError(msg)
        return v

    @field_validator("password")
    @classmethod
    def strong_enough(cls, v: str) -> str:
        if password_policy.test(v):
            msg = "password needs at least 8 characters, one number and one uppercase letter"
            raise ValueError(msg)
        return v


class LoginRequest(_Body):
    username: str = Field(max_length=50)
    password: str = Field(max_length=72)


class UserUpdate(_Body):
    amazon_email: Optional[str] = Field(default=None, max_length=254)
    notification_number: Optional[str] = Field(default=None, max_length=30)


class AmazonAuthRequest(_Body):
    amazon_auth_url: str = Field(min_length=1, max_length=4096)


class LocationCreate(_Body):
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(default="", max_length=100)
    address: str = Field(default="", max_length=200)
    is_ulez: bool = False
    enabled: bool = True
    min_pay: int = Field(default=0, ge=0)
    min_hourly_pay: int = Field(default=0, ge=0)
    arrival_buffer: float = Field(default=60, ge=0)
    min_shift_duration: float = Field(default=0, ge=0)
    max_shift_duration: float = Field(default=24, ge=0)

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "location code must not be empty"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def duration_window(self) -> "LocationCreate":
        if self.min_shift_duration > self.max_shift_duration:
            msg = "minShiftDuration must not exceed maxShiftDuration"
            raise ValueError(msg)
        return self


class LocationUpdate(_Body):
    """Partial update; the merged row is re-validated by the route."""

    name: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=200)
    is_ulez: Optional[bool] = None
    enabled: Optional[bool] = None
    min_pay: Optional[int] = Field(default=None, ge=0)
    min_hourly_pay: Optional[int] = Field(default=None, ge=0)
    arrival_buffer: Optional[float] = Field(default=None, ge=0)
    min_shift_duration: Optional[float] = Field(default=None, ge=0)
    max_shift_duration: Optional[float] = Field(default=None, ge=0)


class SearchSettingsUpdate(_Body):
    strategy: Optional[Literal["short-burst", "steady", "short"]] = None
    auto_solve_captcha: Optional[bool] = None
    stop_after_accepted: Optional[bool] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    schedule: Optional[Dict[str, DaySchedule]] = None

    @field_validator("strategy")
    @classmethod
    def legacy_short(cls, v):
        return "short-burst" if v == "short" else v

    @field_validator("timezone")
    @classmethod
    def known_zone(cls, v):
        if v is not None:
            get_zone(v)
        return v

    @field_validator("schedule")
    @classmethod
    def weekday_keys(cls, v):
        if v is None:
            return v
        out = {}
        for day, entry in v.items():
            key = day.lower()
            if key not in WEEKDAYS:
                msg = f"unknown weekday: {day}"
                raise ValueError(msg)
            out[key] = entry
        return out
