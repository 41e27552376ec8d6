"""Unit domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_br_phone, validate_email, validate_subdomain, validate_time_hhmm
from ..appointments.time_slots import DAY_NAMES


class UnitCreate(BaseModel):
    """Schema for creating a unit. Without parent_id the unit becomes a child of the caller's root unit"""

    name: str
    parent_id: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    subdomain: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Nome é obrigatório")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("subdomain")
    @classmethod
    def validate_subdomain_field(cls, v):
        return validate_subdomain(v)


class UnitUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Nome é obrigatório")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)


class UnitResponse(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UnitTreeResponse(BaseModel):
    root: UnitResponse
    children: list[UnitResponse]


class BusinessHoursDay(BaseModel):
    day_of_week: str
    is_open: bool = True
    open_time: Optional[str] = "09:00"
    close_time: Optional[str] = "18:00"
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v):
        v = (v or "").lower()
        if v not in DAY_NAMES:
            raise ValueError(f"Dia inválido: {v}")
        return v

    @field_validator("open_time", "close_time", "break_start", "break_end")
    @classmethod
    def validate_times(cls, v):
        return validate_time_hhmm(v)


class BusinessHoursUpdate(BaseModel):
    days: list[BusinessHoursDay]


class BlockedDateCreate(BaseModel):
    blocked_date: date
    reason: Optional[str] = None


class BlockedDateResponse(BaseModel):
    id: str
    blocked_date: date
    reason: Optional[str] = None

    class Config:
        from_attributes = True


class SpecialHoursCreate(BaseModel):
    special_date: date
    is_open: bool = True
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("open_time", "close_time", "break_start", "break_end")
    @classmethod
    def validate_times(cls, v):
        return validate_time_hhmm(v)


class SpecialHoursResponse(SpecialHoursCreate):
    id: str

    class Config:
        from_attributes = True
