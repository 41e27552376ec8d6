"""Staff service - Business logic for staff members and their schedules"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models import Staff
from ..units.repository import UnitRepository
from .repository import StaffRepository
from .schedule import can_save, find_schedule_conflicts
from .schemas import StaffCreate, StaffUpdate

logger = logging.getLogger(__name__)


class StaffService:
    """Service layer for staff business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StaffRepository()

    def list_staff(self, ctx: TenantContext, active_only: bool = False) -> list[Staff]:
        return self.repo.get_staff_list(self.db, ctx.barbershop_id, active_only)

    def get_staff(self, staff_id: str, ctx: TenantContext) -> Staff:
        staff = self.repo.get_staff(self.db, staff_id, ctx.barbershop_id)
        if not staff:
            raise HTTPException(status_code=404, detail="Profissional não encontrado")
        return staff

    def validate_schedule(self, schedule: dict, ctx: TenantContext) -> dict:
        business_hours = UnitRepository.get_business_hours(self.db, ctx.barbershop_id)
        conflicts = find_schedule_conflicts(schedule, business_hours, ctx.barbershop_id)
        return {"conflicts": [c.to_dict() for c in conflicts], "can_save": can_save(conflicts)}

    def _ensure_schedule_fits(self, schedule, ctx: TenantContext) -> None:
        if not schedule:
            return
        result = self.validate_schedule(schedule, ctx)
        if not result["can_save"]:
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "Horário do profissional conflita com o expediente",
                    "conflicts": result["conflicts"],
                },
            )

    def create_staff(self, data: StaffCreate, ctx: TenantContext) -> Staff:
        self._ensure_schedule_fits(data.schedule, ctx)
        staff = self.repo.create_staff(self.db, ctx.barbershop_id, **data.model_dump())
        logger.info(f"✂️ Staff {staff.id} created for barbershop {ctx.barbershop_id}")
        return staff

    def update_staff(self, staff_id: str, data: StaffUpdate, ctx: TenantContext) -> Staff:
        staff = self.get_staff(staff_id, ctx)
        updates = data.model_dump(exclude_unset=True)
        if "schedule" in updates:
            self._ensure_schedule_fits(updates["schedule"], ctx)
        return self.repo.update_staff(self.db, staff, **updates)
