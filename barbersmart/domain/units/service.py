"""Unit service - Business logic for units, unit creation and opening hours"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_accessible_unit_ids
from ...models import Barbershop, User, UserBarbershop
from ...shared.saga import Saga, SagaError
from ..appointments.time_slots import default_weekly_schedule
from .repository import UnitRepository
from .schemas import BlockedDateCreate, BusinessHoursUpdate, SpecialHoursCreate, UnitCreate, UnitUpdate

logger = logging.getLogger(__name__)


def default_business_hours() -> list[dict]:
    return [
        {
            "day_of_week": day,
            "is_open": schedule["enabled"],
            "open_time": schedule["start"],
            "close_time": schedule["end"],
            "break_start": None,
            "break_end": None,
        }
        for day, schedule in default_weekly_schedule().items()
    ]


class UnitService:
    """Service layer for unit business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UnitRepository()

    def list_units(self, user: User) -> list[Barbershop]:
        return self.repo.get_units(self.db, get_accessible_unit_ids(self.db, user.id))

    def get_unit(self, unit_id: str, ctx: TenantContext) -> Barbershop:
        if unit_id not in ctx.unit_ids:
            raise HTTPException(status_code=404, detail="Unidade não encontrada")
        unit = self.repo.get_unit(self.db, unit_id)
        if not unit:
            raise HTTPException(status_code=404, detail="Unidade não encontrada")
        return unit

    def get_root(self, ctx: TenantContext) -> Barbershop:
        """Root (matriz) of the unit the request acts on"""
        unit = self.get_unit(ctx.barbershop_id, ctx)
        if unit.parent_id:
            root = self.repo.get_unit(self.db, unit.parent_id)
            if root:
                return root
        return unit

    def get_tree(self, ctx: TenantContext) -> dict:
        root = self.get_root(ctx)
        return {"root": root, "children": self.repo.get_children(self.db, root.id)}

    def get_operational_units(self, ctx: TenantContext) -> list[Barbershop]:
        """Active non-root units of the tenant; the root alone when it has no children"""
        root = self.get_root(ctx)
        children = [u for u in self.repo.get_children(self.db, root.id) if u.active]
        return children or [root]

    # ========================================================================
    # CREATION (saga)
    # ========================================================================

    def _resolve_parent(self, data: UnitCreate, user: User):
        """Parent for a new unit and whether the caller may attach to it"""
        memberships = self.db.query(UserBarbershop).filter(UserBarbershop.user_id == user.id).all()
        if data.parent_id:
            membership = next((m for m in memberships if m.barbershop_id == data.parent_id), None)
            if not membership or membership.role != "admin":
                raise HTTPException(status_code=403, detail="Apenas administradores da matriz podem criar unidades")
            parent = self.repo.get_unit(self.db, data.parent_id)
            if not parent or parent.parent_id is not None:
                raise HTTPException(status_code=400, detail="A unidade pai deve ser uma matriz")
            return parent.id

        admin_roots = [
            m.barbershop_id for m in memberships if m.role == "admin" and m.barbershop.parent_id is None
        ]
        return admin_roots[0] if admin_roots else None

    def _guarded(self, action):
        """Roll back the session when a step fails so compensations can run"""

        def run(ctx):
            try:
                return action(ctx)
            except Exception:
                self.db.rollback()
                raise

        return run

    def create_unit(self, data: UnitCreate, user: User) -> Barbershop:
        """
        Create a unit in steps: unit row, caller's admin link, default business
        hours, optional subdomain. Any failure undoes the completed steps.
        """
        parent_id = self._resolve_parent(data, user)
        logger.info(f"🏪 Creating unit '{data.name}' for user {user.id} (parent: {parent_id or 'none'})")

        def insert_unit(ctx):
            return self.repo.create_unit(
                self.db,
                name=data.name,
                parent_id=parent_id,
                address=data.address,
                phone=data.phone,
                email=data.email,
                active=True,
            )

        saga = Saga("create_unit")
        saga.step(
            "unit",
            self._guarded(insert_unit),
            lambda ctx, unit: self.repo.delete_unit(self.db, unit.id),
        )
        saga.step(
            "link",
            self._guarded(lambda ctx: self.repo.link_user(self.db, user.id, ctx["unit"].id, role="admin")),
            lambda ctx, link: self.repo.unlink_user(self.db, link.id),
        )
        saga.step(
            "business_hours",
            self._guarded(
                lambda ctx: self.repo.replace_business_hours(self.db, ctx["unit"].id, default_business_hours())
            ),
            lambda ctx, _rows: self.repo.delete_business_hours(self.db, ctx["unit"].id),
        )
        if data.subdomain:
            saga.step(
                "domain",
                self._guarded(lambda ctx: self.repo.create_domain(self.db, ctx["unit"].id, data.subdomain)),
                lambda ctx, _domain: self.repo.delete_domain(self.db, ctx["unit"].id),
            )

        try:
            result = saga.run()
        except SagaError as e:
            if isinstance(e.original, IntegrityError) and e.step == "domain":
                raise HTTPException(status_code=409, detail="Subdomínio já está em uso") from e
            raise HTTPException(status_code=500, detail="Erro ao criar unidade") from e

        unit = result["unit"]
        logger.info(f"✅ Unit created: {unit.id}")
        return unit

    def update_unit(self, unit_id: str, data: UnitUpdate, ctx: TenantContext) -> Barbershop:
        unit = self.get_unit(unit_id, ctx)
        return self.repo.update_unit(self.db, unit, **data.model_dump(exclude_unset=True))

    def toggle_active(self, unit_id: str, ctx: TenantContext) -> Barbershop:
        unit = self.get_unit(unit_id, ctx)
        if unit.parent_id is None and unit.active:
            raise HTTPException(status_code=400, detail="A matriz não pode ser desativada")
        unit.active = not unit.active
        self.db.commit()
        self.db.refresh(unit)
        logger.info(f"🔁 Unit {unit.id} active={unit.active}")
        return unit

    # ========================================================================
    # OPENING HOURS
    # ========================================================================

    def get_business_hours(self, ctx: TenantContext):
        return self.repo.get_business_hours(self.db, ctx.barbershop_id)

    def update_business_hours(self, data: BusinessHoursUpdate, ctx: TenantContext):
        days = [day.model_dump() for day in data.days]
        names = [d["day_of_week"] for d in days]
        if len(names) != len(set(names)):
            raise HTTPException(status_code=400, detail="Dia da semana repetido")
        for day in days:
            if day["is_open"] and (not day["open_time"] or not day["close_time"]):
                raise HTTPException(status_code=400, detail="Informe abertura e fechamento dos dias abertos")
            if day["is_open"] and day["open_time"] >= day["close_time"]:
                raise HTTPException(status_code=400, detail="Abertura deve ser antes do fechamento")
        return self.repo.replace_business_hours(self.db, ctx.barbershop_id, days)

    def get_blocked_dates(self, ctx: TenantContext):
        return self.repo.get_blocked_dates(self.db, ctx.barbershop_id)

    def add_blocked_date(self, data: BlockedDateCreate, ctx: TenantContext):
        return self.repo.add_blocked_date(self.db, ctx.barbershop_id, data.blocked_date, data.reason)

    def delete_blocked_date(self, blocked_id: str, ctx: TenantContext) -> dict:
        if not self.repo.delete_blocked_date(self.db, ctx.barbershop_id, blocked_id):
            raise HTTPException(status_code=404, detail="Data bloqueada não encontrada")
        return {"message": "Data desbloqueada"}

    def get_special_hours(self, ctx: TenantContext):
        return self.repo.get_special_hours(self.db, ctx.barbershop_id)

    def add_special_hours(self, data: SpecialHoursCreate, ctx: TenantContext):
        if data.is_open and (not data.open_time or not data.close_time):
            raise HTTPException(status_code=400, detail="Informe abertura e fechamento")
        return self.repo.add_special_hours(self.db, ctx.barbershop_id, **data.model_dump())

    def delete_special_hours(self, special_id: str, ctx: TenantContext) -> dict:
        if not self.repo.delete_special_hours(self.db, ctx.barbershop_id, special_id):
            raise HTTPException(status_code=404, detail="Horário especial não encontrado")
        return {"message": "Horário especial removido"}
