"""Report service - Multi-unit roll-up, dashboard figures and commissions"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models import Barbershop
from ..units.repository import UnitRepository
from ..units.service import UnitService
from .commission import build_commission_report
from .repository import ReportRepository
from .rollup import REPORT_PERIODS, build_unit_metrics, occupancy_rate, period_range, roll_up

logger = logging.getLogger(__name__)

REPORT_ERROR = "Erro ao carregar relatórios"


class ReportService:
    """Service layer for report business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReportRepository()
        self.units = UnitService(db)

    def _resolve_units(self, ctx: TenantContext, unit_ids: Optional[list[str]]) -> list[Barbershop]:
        if not unit_ids:
            return self.units.get_operational_units(ctx)
        denied = [u for u in unit_ids if u not in ctx.unit_ids]
        if denied:
            raise HTTPException(status_code=403, detail="Acesso negado a esta unidade")
        return UnitRepository.get_units(self.db, unit_ids)

    def _unit_metrics(self, unit: Barbershop, start: date, end: date):
        appointments = self.repo.get_appointments(self.db, unit.id, start, end)
        return build_unit_metrics(
            unit_id=unit.id,
            name=unit.name,
            revenue=self.repo.get_revenue(self.db, unit.id, start, end),
            appointments=appointments,
            active_clients=self.repo.count_active_clients(self.db, unit.id),
            new_clients=self.repo.count_new_clients(self.db, unit.id, start, end),
            rating=self.repo.get_average_rating(self.db, unit.id),
            staff=self.repo.get_staff(self.db, unit.id),
        )

    def multi_unit_report(
        self,
        ctx: TenantContext,
        period: str = "month",
        unit_ids: Optional[list[str]] = None,
        today: Optional[date] = None,
    ) -> dict:
        """
        Per-unit metrics and consolidated totals for a period.
        A failing query aborts the whole report; no partial results are returned.
        """
        if period not in REPORT_PERIODS:
            raise HTTPException(status_code=400, detail="Período inválido")

        start, end = period_range(period, today or date.today())
        units = self._resolve_units(ctx, unit_ids)
        logger.info(f"📊 Multi-unit report: {len(units)} units, {start} → {end}")

        try:
            metrics = [self._unit_metrics(unit, start, end) for unit in units]
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load reports: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail=REPORT_ERROR)

        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "unit_ids": [unit.id for unit in units],
            "units": [asdict(m) for m in metrics],
            "totals": asdict(roll_up(metrics)),
        }

    def dashboard(self, ctx: TenantContext, today: Optional[date] = None) -> dict:
        today = today or date.today()
        month_start, month_end = period_range("month", today)
        units = self.units.get_operational_units(ctx)

        rows = []
        try:
            for unit in units:
                today_appointments = self.repo.get_appointments(self.db, unit.id, today, today)
                month_appointments = self.repo.get_appointments(self.db, unit.id, month_start, month_end)
                month_metrics = build_unit_metrics(unit.id, unit.name, 0, month_appointments)
                rows.append(
                    {
                        "unit_id": unit.id,
                        "name": unit.name,
                        "today_appointments": len(today_appointments),
                        "today_revenue": self.repo.get_revenue(self.db, unit.id, today, today),
                        "month_revenue": self.repo.get_revenue(self.db, unit.id, month_start, month_end),
                        "month_appointments": len(month_appointments),
                        "occupancy_rate": occupancy_rate(
                            month_metrics.confirmed_or_completed, month_metrics.appointments
                        ),
                    }
                )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load dashboard: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail=REPORT_ERROR)

        return {
            "date": today,
            "units": rows,
            "total_today_revenue": sum(r["today_revenue"] for r in rows),
            "total_month_revenue": sum(r["month_revenue"] for r in rows),
            "total_today_appointments": sum(r["today_appointments"] for r in rows),
        }

    def commissions(
        self,
        ctx: TenantContext,
        start: Optional[date] = None,
        end: Optional[date] = None,
        staff_id: Optional[str] = None,
    ) -> dict:
        if start is None or end is None:
            month_start, month_end = period_range("month", date.today())
            start = start or month_start
            end = end or month_end
        if start > end:
            raise HTTPException(status_code=400, detail="Data inicial deve ser anterior à final")

        try:
            transactions = self.repo.get_revenue_transactions(self.db, ctx.barbershop_id, start, end, staff_id)
            staff = self.repo.get_staff(self.db, ctx.barbershop_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load commissions: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Erro ao carregar relatório de comissões")

        report = build_commission_report(transactions, staff)
        return {"start_date": start, "end_date": end, "staff_id": staff_id, **report.to_dict()}
