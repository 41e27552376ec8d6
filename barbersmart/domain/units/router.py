"""Unit router - FastAPI endpoints for units and opening hours"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_current_user, get_tenant_context, require_admin
from ...database import get_db
from ...models import User
from .schemas import (
    BlockedDateCreate,
    BlockedDateResponse,
    BusinessHoursDay,
    BusinessHoursUpdate,
    SpecialHoursCreate,
    SpecialHoursResponse,
    UnitCreate,
    UnitResponse,
    UnitTreeResponse,
    UnitUpdate,
)
from .service import UnitService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/units", tags=["Units"])


def get_unit_service(db: Session = Depends(get_db)) -> UnitService:
    """Dependency injection for UnitService"""
    return UnitService(db)


# ============================================================================
# UNITS
# ============================================================================


@router.get("", response_model=list[UnitResponse])
async def list_units(
    current_user: User = Depends(get_current_user),
    service: UnitService = Depends(get_unit_service),
):
    """Units the current user can access"""
    return service.list_units(current_user)


@router.get("/tree", response_model=UnitTreeResponse)
async def get_unit_tree(
    ctx: TenantContext = Depends(get_tenant_context),
    service: UnitService = Depends(get_unit_service),
):
    """Root unit (matriz) and its children"""
    return service.get_tree(ctx)


@router.post("", response_model=UnitResponse, status_code=201)
async def create_unit(
    data: UnitCreate,
    current_user: User = Depends(get_current_user),
    service: UnitService = Depends(get_unit_service),
):
    """Create a unit and link the caller as its admin"""
    return service.create_unit(data, current_user)


@router.patch("/{unit_id}", response_model=UnitResponse)
async def update_unit(
    unit_id: str,
    data: UnitUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    return service.update_unit(unit_id, data, ctx)


@router.post("/{unit_id}/toggle", response_model=UnitResponse)
async def toggle_unit(
    unit_id: str,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    """Activate or deactivate a unit"""
    return service.toggle_active(unit_id, ctx)


# ============================================================================
# OPENING HOURS (unit from X-Barbershop-Id)
# ============================================================================


@router.get("/current/business-hours", response_model=list[BusinessHoursDay])
async def get_business_hours(
    ctx: TenantContext = Depends(get_tenant_context),
    service: UnitService = Depends(get_unit_service),
):
    return service.get_business_hours(ctx)


@router.put("/current/business-hours", response_model=list[BusinessHoursDay])
async def update_business_hours(
    data: BusinessHoursUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    """Replace the weekly opening hours"""
    return service.update_business_hours(data, ctx)


@router.get("/current/blocked-dates", response_model=list[BlockedDateResponse])
async def get_blocked_dates(
    ctx: TenantContext = Depends(get_tenant_context),
    service: UnitService = Depends(get_unit_service),
):
    return service.get_blocked_dates(ctx)


@router.post("/current/blocked-dates", response_model=BlockedDateResponse, status_code=201)
async def add_blocked_date(
    data: BlockedDateCreate,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    return service.add_blocked_date(data, ctx)


@router.delete("/current/blocked-dates/{blocked_id}")
async def delete_blocked_date(
    blocked_id: str,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    return service.delete_blocked_date(blocked_id, ctx)


@router.get("/current/special-hours", response_model=list[SpecialHoursResponse])
async def get_special_hours(
    ctx: TenantContext = Depends(get_tenant_context),
    service: UnitService = Depends(get_unit_service),
):
    return service.get_special_hours(ctx)


@router.post("/current/special-hours", response_model=SpecialHoursResponse, status_code=201)
async def add_special_hours(
    data: SpecialHoursCreate,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    return service.add_special_hours(data, ctx)


@router.delete("/current/special-hours/{special_id}")
async def delete_special_hours(
    special_id: str,
    ctx: TenantContext = Depends(require_admin),
    service: UnitService = Depends(get_unit_service),
):
    return service.delete_special_hours(special_id, ctx)
