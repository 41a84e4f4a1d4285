"""
Pydantic schemas for registration records and admin requests.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict, EmailStr, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel

from eventreg.models.registration import RegistrationStatus
from eventreg.schemas.common import CamelModel


class RegistrationCreate(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = None
    qty: int = Field(..., ge=1, le=10, strict=True)
    dietary: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone", "dietary", "notes")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class Registration(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    qty: int
    dietary: Optional[str] = None
    notes: Optional[str] = None
    status: RegistrationStatus = RegistrationStatus.PENDING
    checked_in: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CheckInRequest(CamelModel):
    registration_id: int = Field(..., gt=0, strict=True)
    checked_in: StrictBool
