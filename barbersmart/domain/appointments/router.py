"""Appointment router - FastAPI endpoints for appointments and recurring series"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context
from ...database import get_db
from ...services.notification_service import notify_appointment_status
from .schemas import (
    AppointmentCreate,
    AppointmentCreateResponse,
    AppointmentListResponse,
    AppointmentResponse,
    AvailableSlotsResponse,
    PauseRequest,
    RecurrencePreviewResponse,
    RecurrenceRequest,
    ResumeRequest,
    SeriesActionRequest,
    SeriesActionResponse,
    SeriesSummaryResponse,
    StatusUpdate,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# QUERIES
# ============================================================================


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
    staff_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("date", pattern="^(date|client|price|status)$"),
    descending: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """Filtered, sorted and paginated appointments, with recurring series summarized"""
    result = service.list_appointments(
        ctx, date_from, date_to, status, staff_id, search, sort_by, descending, page, page_size
    )
    result["series"] = [SeriesSummaryResponse.from_summary(s) for s in result["series"]]
    return result


@router.get("/slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    target_date: date = Query(..., alias="date"),
    staff_id: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None),
    duration_minutes: Optional[int] = Query(None, ge=5, le=480),
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free start times for a date, honoring blocked dates, special hours and schedules"""
    return service.available_slots(target_date, ctx, staff_id, service_id, duration_minutes)


@router.post("/recurrence/preview", response_model=RecurrencePreviewResponse)
async def preview_recurrence(
    recurrence: RecurrenceRequest,
    start_date: date = Query(...),
    price: Optional[float] = Query(None, ge=0),
    _ctx: TenantContext = Depends(get_tenant_context),
):
    """Dates and labels a recurrence would produce, without creating anything"""
    return AppointmentService.preview_recurrence(start_date, recurrence, price)


@router.get("/series/{group_id}", response_model=SeriesSummaryResponse)
async def get_series(
    group_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    return SeriesSummaryResponse.from_summary(service.get_series_summary(group_id, ctx))


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.get_appointment(appointment_id, ctx)


# ============================================================================
# MUTATIONS
# ============================================================================


@router.post("", response_model=AppointmentCreateResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create an appointment, or a whole recurring series"""
    return service.create_appointment(data, ctx)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: str,
    data: StatusUpdate,
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Change status and notify the client over WhatsApp"""
    appointment = service.update_status(appointment_id, data.status, ctx)
    background_tasks.add_task(notify_appointment_status, appointment.id, data.status)
    return appointment


@router.post("/{appointment_id}/cancel", response_model=SeriesActionResponse)
async def cancel_appointment(
    appointment_id: str,
    data: SeriesActionRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel this appointment, the rest of its series, or the whole series"""
    return service.cancel(appointment_id, data.scope, ctx)


@router.post("/{appointment_id}/pause", response_model=SeriesActionResponse)
async def pause_appointment(
    appointment_id: str,
    data: PauseRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.pause(appointment_id, data, ctx)


@router.post("/{appointment_id}/resume", response_model=SeriesActionResponse)
async def resume_appointment(
    appointment_id: str,
    data: ResumeRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.resume(appointment_id, data.scope, ctx)
