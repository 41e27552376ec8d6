"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_br_phone, validate_time_hhmm
from .recurrence import RECURRENCE_RULES
from .series import APPOINTMENT_STATUSES

ActionScope = Literal["single", "future", "all"]


class RecurrenceRequest(BaseModel):
    rule: str
    count: int = 4
    custom_interval_days: Optional[int] = None
    end_date: Optional[date] = None

    @field_validator("rule")
    @classmethod
    def validate_rule(cls, v):
        if v not in RECURRENCE_RULES:
            raise ValueError(f"Regra de recorrência inválida: {v}")
        return v

    @field_validator("count")
    @classmethod
    def validate_count(cls, v):
        if v < 1 or v > 52:
            raise ValueError("Quantidade deve estar entre 1 e 52")
        return v

    @field_validator("custom_interval_days")
    @classmethod
    def validate_interval(cls, v):
        if v is not None and (v < 1 or v > 365):
            raise ValueError("Intervalo deve estar entre 1 e 365 dias")
        return v


class AppointmentCreate(BaseModel):
    """Schema for creating an appointment, or a recurring series when recurrence is given"""

    client_id: Optional[str] = None
    client_name: str
    client_phone: Optional[str] = None
    staff_id: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    service_price: Optional[float] = None
    duration_minutes: Optional[int] = None
    appointment_date: date
    appointment_time: str
    status: str = "pendente"
    notes: Optional[str] = None
    recurrence: Optional[RecurrenceRequest] = None
    skip_conflicts: bool = False
    validate_schedule: bool = True

    @field_validator("client_phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v):
        if not v:
            raise ValueError("Horário é obrigatório")
        return validate_time_hhmm(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status inválido: {v}")
        return v

    @field_validator("service_price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Preço não pode ser negativo")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and (v < 5 or v > 480):
            raise ValueError("Duração deve estar entre 5 e 480 minutos")
        return v


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status inválido: {v}")
        return v


class SeriesActionRequest(BaseModel):
    scope: ActionScope = "single"


class PauseRequest(BaseModel):
    scope: ActionScope = "future"
    paused_until: Optional[date] = None
    reason: Optional[str] = None


class ResumeRequest(BaseModel):
    scope: ActionScope = "future"


class AppointmentResponse(BaseModel):
    id: str
    barbershop_id: str
    client_id: Optional[str] = None
    client_name: str
    client_phone: Optional[str] = None
    staff_id: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    service_price: Optional[float] = None
    duration_minutes: Optional[int] = None
    appointment_date: date
    appointment_time: str
    status: str
    notes: Optional[str] = None
    payment_status: Optional[str] = None
    payment_method_chosen: Optional[str] = None
    payment_amount: Optional[float] = None
    is_recurring: bool = False
    recurrence_group_id: Optional[str] = None
    recurrence_rule: Optional[str] = None
    recurrence_index: Optional[int] = None
    original_date: Optional[date] = None
    is_paused: bool = False
    paused_until: Optional[date] = None
    pause_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SeriesSummaryResponse(BaseModel):
    group_id: Optional[str] = None
    size: int
    pending_count: int
    completed_count: int
    cancelled_count: int
    paused_count: int
    total_value: float
    recurrence_label: str
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    appointments: list[AppointmentResponse]

    @classmethod
    def from_summary(cls, summary) -> "SeriesSummaryResponse":
        return cls(
            group_id=summary.group_id,
            size=summary.size,
            pending_count=summary.pending_count,
            completed_count=summary.completed_count,
            cancelled_count=summary.cancelled_count,
            paused_count=summary.paused_count,
            total_value=round(summary.total_value, 2),
            recurrence_label=summary.recurrence_label,
            first_date=summary.first.appointment_date if summary.first else None,
            last_date=summary.last.appointment_date if summary.last else None,
            appointments=[AppointmentResponse.model_validate(a) for a in summary.appointments],
        )


class AppointmentListResponse(BaseModel):
    """One page of appointments. Filters are echoed so callers can drop stale responses"""

    appointments: list[AppointmentResponse]
    standalone: list[AppointmentResponse]
    series: list[SeriesSummaryResponse]
    total: int
    page: int
    page_size: int
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[str] = None
    staff_id: Optional[str] = None


class ConflictInfo(BaseModel):
    appointment_date: date
    appointment_time: str
    reason: str


class AppointmentCreateResponse(BaseModel):
    created: list[AppointmentResponse]
    skipped: list[ConflictInfo]
    recurrence_group_id: Optional[str] = None
    summary: Optional[str] = None
    total_price: float = 0


class SeriesActionResponse(BaseModel):
    affected: int
    appointment_ids: list[str]
    scope: str


class AvailableSlotsResponse(BaseModel):
    date: date
    staff_id: Optional[str] = None
    duration_minutes: int
    slots: list[str]
    reason: Optional[str] = None


class CountOption(BaseModel):
    value: int
    label: str


class RecurrencePreviewResponse(BaseModel):
    dates: list[date]
    label: str
    summary: str
    duration_label: str
    total_price: float
    count_options: list[CountOption]
