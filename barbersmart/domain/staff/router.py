"""Staff router - FastAPI endpoints for staff members"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_admin
from ...database import get_db
from .schemas import (
    ScheduleValidationRequest,
    ScheduleValidationResponse,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from .service import StaffService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])


def get_staff_service(db: Session = Depends(get_db)) -> StaffService:
    """Dependency injection for StaffService"""
    return StaffService(db)


@router.get("", response_model=list[StaffResponse])
async def list_staff(
    active_only: bool = Query(False),
    ctx: TenantContext = Depends(get_tenant_context),
    service: StaffService = Depends(get_staff_service),
):
    return service.list_staff(ctx, active_only)


@router.get("/{staff_id}", response_model=StaffResponse)
async def get_staff(
    staff_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: StaffService = Depends(get_staff_service),
):
    return service.get_staff(staff_id, ctx)


@router.post("", response_model=StaffResponse, status_code=201)
async def create_staff(
    data: StaffCreate,
    ctx: TenantContext = Depends(require_admin),
    service: StaffService = Depends(get_staff_service),
):
    return service.create_staff(data, ctx)


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: str,
    data: StaffUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: StaffService = Depends(get_staff_service),
):
    return service.update_staff(staff_id, data, ctx)


@router.post("/schedule/validate", response_model=ScheduleValidationResponse)
async def validate_schedule(
    data: ScheduleValidationRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: StaffService = Depends(get_staff_service),
):
    """Check a weekly schedule against the unit's business hours before saving"""
    return service.validate_schedule(data.schedule, ctx)
