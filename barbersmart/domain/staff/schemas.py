"""Staff domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_br_phone, validate_email


def _validate_rate(v):
    if v is not None and (v < 0 or v > 100):
        raise ValueError("Comissão deve estar entre 0 e 100")
    return v


class StaffCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[str] = None
    specialties: Optional[list[str]] = None
    commission_rate: Optional[float] = 0
    schedule: Optional[dict[str, Any]] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("commission_rate")
    @classmethod
    def validate_commission(cls, v):
        return _validate_rate(v)


class StaffUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    specialties: Optional[list[str]] = None
    commission_rate: Optional[float] = None
    schedule: Optional[dict[str, Any]] = None
    active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("commission_rate")
    @classmethod
    def validate_commission(cls, v):
        return _validate_rate(v)


class StaffResponse(BaseModel):
    id: str
    barbershop_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    specialties: Optional[list[str]] = None
    commission_rate: Optional[float] = None
    schedule: Optional[dict[str, Any]] = None
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleValidationRequest(BaseModel):
    schedule: dict[str, Any]


class ScheduleConflictResponse(BaseModel):
    day: str
    type: str
    message: str
    severity: str


class ScheduleValidationResponse(BaseModel):
    conflicts: list[ScheduleConflictResponse]
    can_save: bool
