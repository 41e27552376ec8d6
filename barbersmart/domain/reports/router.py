"""Report router - FastAPI endpoints for reports"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_admin
from ...database import get_db
from .schemas import CommissionReportResponse, DashboardResponse, MultiUnitReportResponse
from .service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    """Dependency injection for ReportService"""
    return ReportService(db)


@router.get("/multi-unit", response_model=MultiUnitReportResponse)
async def multi_unit_report(
    period: str = Query("month", pattern="^(week|month|3months|year)$"),
    unit_ids: Optional[list[str]] = Query(None),
    ctx: TenantContext = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    """Metrics per unit and consolidated totals"""
    return service.multi_unit_report(ctx, period, unit_ids)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    ctx: TenantContext = Depends(get_tenant_context),
    service: ReportService = Depends(get_report_service),
):
    return service.dashboard(ctx)


@router.get("/commissions", response_model=CommissionReportResponse)
async def commissions(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    staff_id: Optional[str] = Query(None),
    ctx: TenantContext = Depends(require_admin),
    service: ReportService = Depends(get_report_service),
):
    """Staff commissions over revenue transactions of the current unit"""
    return service.commissions(ctx, start_date, end_date, staff_id)
