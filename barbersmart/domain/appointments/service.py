"""Appointment service - Business logic for appointments and recurring series"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models import Appointment
from ..units.repository import UnitRepository
from .recurrence import (
    calculate_total_price,
    format_recurrence_summary,
    generate_recurrence_group_id,
    generate_recurring_dates,
    get_count_duration_label,
    get_recurrence_count_options,
    get_recurrence_label,
)
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, PauseRequest, RecurrenceRequest
from .series import (
    OPEN_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    group_appointments,
    sort_series,
    summarize_series,
)
from .time_slots import SLOT_STEP_MINUTES, TimeSlotPlanner, check_time_overlap, filter_available_slots

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.units = UnitRepository()

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_appointments(
        self,
        ctx: TenantContext,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
        staff_id: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "date",
        descending: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> dict:
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
        items, total = self.repo.list_appointments(
            self.db,
            ctx.barbershop_id,
            date_from=date_from,
            date_to=date_to,
            status=status,
            staff_id=staff_id,
            search=search,
            sort_by=sort_by,
            descending=descending,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        standalone, page_series = group_appointments(items)
        # A page may hold only part of a series; summaries cover the whole group
        series = [
            summarize_series(self.repo.get_series(self.db, s.group_id, ctx.barbershop_id), s.group_id)
            for s in page_series
        ]
        return {
            "appointments": items,
            "standalone": standalone,
            "series": series,
            "total": total,
            "page": page,
            "page_size": page_size,
            "date_from": date_from,
            "date_to": date_to,
            "status": status,
            "staff_id": staff_id,
        }

    def get_appointment(self, appointment_id: str, ctx: TenantContext) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id, ctx.barbershop_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Agendamento não encontrado")
        return appointment

    def get_series_summary(self, group_id: str, ctx: TenantContext):
        appointments = self.repo.get_series(self.db, group_id, ctx.barbershop_id)
        if not appointments:
            raise HTTPException(status_code=404, detail="Série não encontrada")
        return summarize_series(appointments, group_id)

    # ========================================================================
    # CREATION
    # ========================================================================

    def _build_planner(self, ctx: TenantContext, staff_schedule: Optional[dict], start: date) -> TimeSlotPlanner:
        unit_id = ctx.barbershop_id
        return TimeSlotPlanner(
            business_hours=self.units.get_business_hours(self.db, unit_id),
            special_hours=self.units.get_special_hours(self.db, unit_id, start=start),
            blocked_dates=[b.blocked_date for b in self.units.get_blocked_dates(self.db, unit_id, start=start)],
            staff_schedule=staff_schedule,
            unit_id=unit_id,
        )

    def _find_conflicts(
        self,
        ctx: TenantContext,
        dates: list[date],
        time: str,
        duration: int,
        staff_id: Optional[str],
        planner: Optional[TimeSlotPlanner],
    ) -> dict[date, str]:
        """Reason per date that cannot be booked"""
        conflicts: dict[date, str] = {}

        if planner is not None:
            for current in dates:
                validation = planner.validate_date_time(current, time)
                if not validation.is_valid:
                    conflicts[current] = validation.reason

        if staff_id:
            booked_by_date: dict[date, list[tuple[str, int]]] = {}
            for booked in self.repo.get_booked_for_dates(self.db, ctx.barbershop_id, staff_id, dates):
                booked_by_date.setdefault(booked.appointment_date, []).append(
                    (booked.appointment_time, booked.duration_minutes or SLOT_STEP_MINUTES)
                )
            for current in dates:
                if current not in conflicts and check_time_overlap(time, duration, booked_by_date.get(current, [])):
                    conflicts[current] = "Profissional já possui agendamento neste horário"

        return conflicts

    def create_appointment(self, data: AppointmentCreate, ctx: TenantContext) -> dict:
        """Create one appointment, or every occurrence of a recurring series"""
        staff = None
        if data.staff_id:
            staff = self.repo.get_staff(self.db, data.staff_id, ctx.barbershop_id)
            if not staff or not staff.active:
                raise HTTPException(status_code=404, detail="Profissional não encontrado")

        service = None
        if data.service_id:
            service = self.repo.get_service(self.db, data.service_id, ctx.barbershop_id)
            if not service:
                raise HTTPException(status_code=404, detail="Serviço não encontrado")

        service_name = data.service_name or (service.name if service else None)
        service_price = data.service_price if data.service_price is not None else (service.price if service else None)
        duration = data.duration_minutes or (service.duration_minutes if service else None) or SLOT_STEP_MINUTES

        recurrence = data.recurrence
        if recurrence:
            dates = generate_recurring_dates(
                data.appointment_date,
                recurrence.rule,
                recurrence.count,
                recurrence.custom_interval_days,
                recurrence.end_date,
            )
        else:
            dates = [data.appointment_date]

        planner = (
            self._build_planner(ctx, staff.schedule if staff else None, data.appointment_date)
            if data.validate_schedule
            else None
        )
        conflicts = self._find_conflicts(ctx, dates, data.appointment_time, duration, data.staff_id, planner)
        skipped = [
            {"appointment_date": d, "appointment_time": data.appointment_time, "reason": conflicts[d]}
            for d in dates
            if d in conflicts
        ]

        if conflicts and not (recurrence and data.skip_conflicts):
            logger.warning(f"⚠️ Appointment conflicts for unit {ctx.barbershop_id}: {len(conflicts)}")
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "Conflito de horário",
                    "conflicts": [{**c, "appointment_date": c["appointment_date"].isoformat()} for c in skipped],
                },
            )

        group_id = generate_recurrence_group_id() if recurrence else None
        rows = []
        for index, current in enumerate(dates):
            if current in conflicts:
                continue
            rows.append(
                {
                    "barbershop_id": ctx.barbershop_id,
                    "client_id": data.client_id,
                    "client_name": data.client_name,
                    "client_phone": data.client_phone,
                    "staff_id": data.staff_id,
                    "service_id": data.service_id,
                    "service_name": service_name,
                    "service_price": service_price,
                    "duration_minutes": duration,
                    "appointment_date": current,
                    "appointment_time": data.appointment_time,
                    "status": data.status,
                    "notes": data.notes,
                    "is_recurring": recurrence is not None,
                    "recurrence_group_id": group_id,
                    "recurrence_rule": recurrence.rule if recurrence else None,
                    "recurrence_index": index if recurrence else None,
                    "original_date": current if recurrence else None,
                }
            )

        if not rows:
            raise HTTPException(status_code=409, detail="Nenhuma data disponível para a recorrência")

        created = self.repo.create_appointments(self.db, rows)
        logger.info(
            f"✅ Created {len(created)} appointment(s) for unit {ctx.barbershop_id}"
            + (f" (series {group_id}, {len(skipped)} skipped)" if group_id else "")
        )

        summary = None
        if recurrence:
            summary = format_recurrence_summary(
                recurrence.rule, len(created), created[0].appointment_date, recurrence.custom_interval_days
            )
        return {
            "created": created,
            "skipped": skipped,
            "recurrence_group_id": group_id,
            "summary": summary,
            "total_price": calculate_total_price(service_price, len(created)),
        }

    @staticmethod
    def preview_recurrence(start: date, recurrence: RecurrenceRequest, price: Optional[float] = None) -> dict:
        dates = generate_recurring_dates(
            start, recurrence.rule, recurrence.count, recurrence.custom_interval_days, recurrence.end_date
        )
        return {
            "dates": dates,
            "label": get_recurrence_label(recurrence.rule, recurrence.custom_interval_days),
            "summary": (
                format_recurrence_summary(recurrence.rule, len(dates), start, recurrence.custom_interval_days)
                if dates
                else ""
            ),
            "duration_label": get_count_duration_label(recurrence.rule, len(dates), recurrence.custom_interval_days),
            "total_price": calculate_total_price(price, len(dates)),
            "count_options": get_recurrence_count_options(recurrence.rule, recurrence.custom_interval_days),
        }

    # ========================================================================
    # STATUS
    # ========================================================================

    def update_status(self, appointment_id: str, status: str, ctx: TenantContext) -> Appointment:
        """Change status; completing an appointment records its revenue once"""
        appointment = self.get_appointment(appointment_id, ctx)
        previous = appointment.status
        appointment.status = status
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"🔄 Appointment {appointment.id}: {previous} -> {status}")

        if status == STATUS_COMPLETED and previous != STATUS_COMPLETED:
            self._record_revenue(appointment, ctx)
        return appointment

    def _record_revenue(self, appointment: Appointment, ctx: TenantContext) -> None:
        if self.repo.get_revenue_transaction(self.db, appointment.id):
            return
        amount = float(appointment.service_price or 0)
        commission_rate = float(appointment.staff.commission_rate or 0) if appointment.staff else 0.0
        self.repo.create_transaction(
            self.db,
            barbershop_id=ctx.barbershop_id,
            appointment_id=appointment.id,
            staff_id=appointment.staff_id,
            type="receita",
            amount=amount,
            description=f"{appointment.service_name or 'Serviço'} - {appointment.client_name}",
            category="servico",
            payment_method="dinheiro",
            transaction_date=appointment.appointment_date,
            commission_rate=commission_rate,
            commission_amount=round(amount * commission_rate / 100, 2),
        )
        logger.info(f"💰 Revenue recorded for appointment {appointment.id}: R$ {amount:.2f}")

    # ========================================================================
    # SERIES ACTIONS (single / future / all)
    # ========================================================================

    def _scoped(self, appointment: Appointment, scope: str, ctx: TenantContext) -> list[Appointment]:
        if scope == "single" or not appointment.recurrence_group_id:
            return [appointment]

        series = sort_series(self.repo.get_series(self.db, appointment.recurrence_group_id, ctx.barbershop_id))
        if scope == "all":
            return series

        anchor = (appointment.appointment_date, appointment.appointment_time)
        return [a for a in series if (a.appointment_date, a.appointment_time) >= anchor]

    @staticmethod
    def _action_result(appointments: list[Appointment], scope: str) -> dict:
        return {"affected": len(appointments), "appointment_ids": [a.id for a in appointments], "scope": scope}

    def cancel(self, appointment_id: str, scope: str, ctx: TenantContext) -> dict:
        appointment = self.get_appointment(appointment_id, ctx)
        targets = [
            a
            for a in self._scoped(appointment, scope, ctx)
            if a.status not in (STATUS_COMPLETED, STATUS_CANCELLED)
        ]
        self.repo.update_appointments(self.db, targets, status=STATUS_CANCELLED)
        logger.info(f"🚫 Cancelled {len(targets)} appointment(s) (scope={scope}) from {appointment_id}")
        return self._action_result(targets, scope)

    def pause(self, appointment_id: str, data: PauseRequest, ctx: TenantContext) -> dict:
        appointment = self.get_appointment(appointment_id, ctx)
        if data.paused_until and data.paused_until < appointment.appointment_date:
            raise HTTPException(status_code=400, detail="Data final da pausa deve ser após o agendamento")

        targets = [
            a for a in self._scoped(appointment, data.scope, ctx) if a.status in OPEN_STATUSES and not a.is_paused
        ]
        self.repo.update_appointments(
            self.db,
            targets,
            is_paused=True,
            paused_at=datetime.utcnow(),
            paused_until=data.paused_until,
            pause_reason=data.reason,
        )
        logger.info(f"⏸️ Paused {len(targets)} appointment(s) (scope={data.scope}) from {appointment_id}")
        return self._action_result(targets, data.scope)

    def resume(self, appointment_id: str, scope: str, ctx: TenantContext) -> dict:
        appointment = self.get_appointment(appointment_id, ctx)
        targets = [a for a in self._scoped(appointment, scope, ctx) if a.is_paused]
        self.repo.update_appointments(
            self.db, targets, is_paused=False, paused_at=None, paused_until=None, pause_reason=None
        )
        logger.info(f"▶️ Resumed {len(targets)} appointment(s) (scope={scope}) from {appointment_id}")
        return self._action_result(targets, scope)

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    def available_slots(
        self,
        target: date,
        ctx: TenantContext,
        staff_id: Optional[str] = None,
        service_id: Optional[str] = None,
        duration_minutes: Optional[int] = None,
    ) -> dict:
        staff = None
        if staff_id:
            staff = self.repo.get_staff(self.db, staff_id, ctx.barbershop_id)
            if not staff:
                raise HTTPException(status_code=404, detail="Profissional não encontrado")

        duration = duration_minutes
        if not duration and service_id:
            service = self.repo.get_service(self.db, service_id, ctx.barbershop_id)
            if not service:
                raise HTTPException(status_code=404, detail="Serviço não encontrado")
            duration = service.duration_minutes
        duration = duration or SLOT_STEP_MINUTES

        planner = self._build_planner(ctx, staff.schedule if staff else None, target)
        validation = planner.validate_date_time(target)
        slots = planner.generate_time_slots(target, duration)

        # Bookings only block a slot for the staff member who holds them
        booked = []
        if staff_id:
            booked = [
                (a.appointment_time, a.duration_minutes or SLOT_STEP_MINUTES)
                for a in self.repo.get_booked_for_dates(self.db, ctx.barbershop_id, staff_id, [target])
            ]
        return {
            "date": target,
            "staff_id": staff_id,
            "duration_minutes": duration,
            "slots": filter_available_slots(slots, duration, booked),
            "reason": validation.reason,
        }
